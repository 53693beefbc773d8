"""Solana wallet bot: interactive sell flow over Jupiter Ultra."""

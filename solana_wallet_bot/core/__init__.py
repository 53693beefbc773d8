"""Core sell-flow components"""

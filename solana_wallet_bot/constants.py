# ============================================
# MINTS
# ============================================
# Wrapped SOL; Jupiter treats it as native SOL on swap output
WSOL_MINT = "So11111111111111111111111111111111111111112"
NATIVE_MINT = WSOL_MINT
LAMPORTS_PER_SOL = 1_000_000_000

# ============================================
# API ENDPOINTS
# ============================================
JUPITER_ULTRA_API = "https://api.jup.ag/ultra/v1"
JUPITER_PRICE_API = "https://api.jup.ag/price/v3"
MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
DEVNET_RPC_URL = "https://api.devnet.solana.com"
EXPLORER_TX_URL = "https://solscan.io/tx/{signature}"

# ============================================
# SELL FLOW
# ============================================
SELL_PERCENTAGES = (10, 25, 50, 100)
SELL_SLIPPAGE_BPS = 50  # 0.5%
CANCEL_TOKENS = frozenset({"cancel", "/cancel"})

# Max ids per Jupiter price request
PRICE_BATCH_SIZE = 50

# Used when neither the caller nor the price API knows the decimals
DEFAULT_TOKEN_DECIMALS = 9

# ============================================
# CALLBACK DATA (correlation keys)
# ============================================
CB_SELL_MENU = "sell_menu"
CB_SELL_TOKEN = "sell_token"
CB_SELL_PERCENT = "sell_percent"
CB_SELL_CUSTOM = "sell_custom"

# ============================================
# TIMEOUTS (seconds)
# ============================================
API_TIMEOUT_SEC = 15.0
PRICE_TIMEOUT_SEC = 10.0
SWAP_TIMEOUT_SEC = 30.0
CONFIRM_TIMEOUT_SEC = 60.0
PENDING_INPUT_TTL_SEC = 600.0

"""
Common token and account names for testing.

Usage:
    from tests.fixtures import WANT, REWARD, KEEPER

    ledger.mint(REWARD, strategy.address, 1000)
    strategy.harvest(KEEPER)
"""


# ============================================================================
# Tokens
# ============================================================================

WANT = "WANT"
REWARD = "REWARD"
NATIVE = "WNATIVE"
USDC = "USDC"
LP = "USDC-WNATIVE-LP"


# ============================================================================
# Accounts
# ============================================================================

OWNER = "owner"
KEEPER = "keeper"
VAULT = "vault"
STRATEGIST = "strategist"
TREASURY = "treasury"
ALICE = "alice"
BOB = "bob"

# Liquidity seeded into the test USDC/WNATIVE pair, per side
SEED = 10 ** 24

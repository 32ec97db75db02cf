"""Constants for the Lunie chain-data core."""
from datetime import datetime, timezone
from decimal import Decimal

# Unit conversion
DISPLAY_DECIMALS = 6  # Fixed decimal places for display amounts
DEFAULT_CONVERSION_FACTOR = Decimal("0.000001")  # 1 smallest unit = 1e-6 display units
SMALLEST_UNITS_PER_TOKEN = Decimal(1000000)
DUST_THRESHOLD = Decimal("0.000001")  # Rewards below this are not shown

# Validator status
ACTIVE_STATUS_CODE = 2  # Raw "bonded" status code of the v0 staking module
# Chains mark a permanently jailed validator with a jailed_until far in the future
BANNED_JAILED_UNTIL = datetime(9000, 2, 1, tzinfo=timezone.utc)

# Governance
FINALIZED_PROPOSAL_STATUSES = ("passed", "rejected")
UNKNOWN_VOTE_PERCENTAGE = -1

# Validator website placeholder some chains ship by default
WEBSITE_PLACEHOLDER = "[do-not-modify]"

UNSUPPORTED_TOKEN_MESSAGE = (
    "The token you are trying to request data for is not supported by Lunie."
)

# Static chain denom -> display denom table
DENOM_LOOKUP = {
    "uatom": "ATOM",
    "umuon": "MUON",
    "uluna": "LUNA",
    "ukrw": "KRT",
    "umnt": "MNT",
    "usdr": "SDT",
    "uusd": "UST",
    "seed": "TREE",
    "ungm": "NGM",
    "eeur": "eEUR",
    "echf": "eCHF",
    "ejpy": "eJPY",
    "eusd": "eUSD",
    "edkk": "eDKK",
    "enok": "eNOK",
    "esek": "eSEK",
    "ukava": "KAVA",
    "uakt": "AKT",
}

# Persistence constants
STORE_KEY_PREFIX = "store"  # Keys look like store_<networkId>_<address>
PERSISTED_STATE_VERSION = 1  # Bump when the persisted slice layout changes
DEFAULT_DEBOUNCE_SECONDS = 2.0  # Coalesce mutation bursts into one write

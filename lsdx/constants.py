"""
LSDX Constants

This module consolidates global constants and environment configuration
used throughout the codebase. Constants are organized by category for easy
reference and maintenance.
"""
import ast
from decimal import Decimal
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

STAKING_DEFAULTS = {
    'LSDX_BOND_DENOM':                 'ustake',
    'LSDX_EXPIRY_BLOCKS':              '25920',
    'LSDX_VALIDATOR_POLICY':           'fixed',
    'LSDX_CLAIM_MODEL':                'global',
}

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# ==================================================================================
# ACCOUNTING CONSTANTS
# ==================================================================================
# Amounts are unsigned 128-bit integers, mirroring the host's coin representation.
UINT128_MAX = 2**128 - 1

# Fractional digits kept for exchange rates and exit tax.
DECIMAL_PLACES = 18

# Exchange rate reported while nothing has been issued yet.
FALLBACK_RATIO = Decimal(1)

# Token display metadata bounds.
MAX_TOKEN_DECIMALS = 18


# ==================================================================================
# LOCAL HOST DEFAULTS
# ==================================================================================
DEFAULT_CONTRACT_ADDRESS = 'cosmos2contract'
DEFAULT_CHAIN_ID = 'lsdx-local-1'
DEFAULT_GENESIS_HEIGHT = 12345
DEFAULT_BLOCK_TIME = 5  # seconds


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
DEFAULTS = {**STAKING_DEFAULTS, **LOGGER_DEFAULTS}
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        # ast.literal_eval expects "True"/"False"
        return ast.literal_eval(s.title())
    return v

for key, default_raw in DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)

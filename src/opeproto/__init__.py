from .cipher import Cipher, ValueRange
from .errors import (
    OPEError,
    InvalidRangeLimitsError,
    OutOfRangeError,
    InvalidCiphertextError,
    InvalidCoinError,
    NotEnoughCoinsError,
)
from .tape import CoinTape, KeyedTape, NodeTape

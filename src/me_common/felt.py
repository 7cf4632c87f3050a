"""Wide-integer helpers for StarkNet values.

Quantities and asset ids are u256 and travel as decimal strings; addresses,
nonces and hashes are felts and travel as hex strings. Everything is parsed
into a Python int once at the boundary and never narrowed.
"""

U128_MAX = (1 << 128) - 1
U256_MAX = (1 << 256) - 1
# StarkNet field prime: a felt is any integer in [0, P).
FELT_PRIME = (1 << 251) + 17 * (1 << 192) + 1
# Contract addresses live in [0, 2**251).
ADDRESS_BOUND = 1 << 251


def parse_u256(value: str, field: str) -> int:
    """Parse a non-negative decimal string into an int within the u256 range."""
    text = value.strip()
    if not text.isdigit():
        raise ValueError(f"Invalid u256 value for {field}: {value!r}")
    n = int(text)
    if n > U256_MAX:
        raise ValueError(f"Value out of u256 range for {field}: {value}")
    return n


def to_u256_parts(n: int) -> tuple[int, int]:
    """Split a u256 into its (low, high) u128 halves."""
    if n < 0 or n > U256_MAX:
        raise ValueError(f"Value out of u256 range: {n}")
    return n & U128_MAX, n >> 128


def parse_felt(value: str, field: str) -> int:
    """Parse a felt given as 0x-prefixed hex or as a decimal string."""
    text = value.strip()
    try:
        if text[:2].lower() == "0x":
            n = int(text[2:], 16)
        elif text.isdigit():
            n = int(text)
        else:
            raise ValueError(text)
    except ValueError:
        raise ValueError(f"Invalid felt value for {field}: {value!r}") from None
    if n >= FELT_PRIME:
        raise ValueError(f"Value out of felt range for {field}: {value}")
    return n


def felt_to_hex(n: int) -> str:
    """Canonical 0x + 64 lowercase hex rendering."""
    return f"0x{n:064x}"


def normalize_address(value: str, field: str = "address") -> str:
    """Validate a contract address and return its padded lowercase form."""
    n = parse_felt(value, field)
    if n >= ADDRESS_BOUND:
        raise ValueError(f"Invalid contract address for {field}: {value}")
    return felt_to_hex(n)

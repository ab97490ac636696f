from typing import Any, Dict, Union

from eth_utils import to_checksum_address


def hex_to_int(value: Union[str, int]) -> int:
    """Convert hexadecimal string (or plain integer) to integer"""
    if isinstance(value, str) and value.lower().startswith("0x"):
        return int(value, 16)
    return int(value)


def same_address(a: str, b: str) -> bool:
    """Compare two Ethereum addresses regardless of checksum casing"""
    if not a or not b:
        return False
    return to_checksum_address(a) == to_checksum_address(b)


def env_lines(values: Dict[str, Any]) -> str:
    """Render a mapping as KEY=value lines for shell consumption"""
    return "\n".join(f"{key}={value}" for key, value in values.items())

"""
Utils module - Encoding and validation helpers.
"""

from councilvault.utils.encoding import (
    b64decode_field,
    b64decode_str,
    b64encode_str,
    bytes_to_hex,
    hex_to_bytes,
)
from councilvault.utils.validators import as_bytes, as_message_bytes, validate_key_length

__all__ = [
    "b64decode_field",
    "b64decode_str",
    "b64encode_str",
    "bytes_to_hex",
    "hex_to_bytes",
    "as_bytes",
    "as_message_bytes",
    "validate_key_length",
]

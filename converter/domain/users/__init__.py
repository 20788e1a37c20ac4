from .projection import KNOWN_KEYS, build_full_name, parse_int_prefix, to_user_document, to_user_row

__all__ = [
    "KNOWN_KEYS",
    "build_full_name",
    "parse_int_prefix",
    "to_user_document",
    "to_user_row",
]

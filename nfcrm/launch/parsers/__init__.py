from .csv_parser import (
    parse_delimited, parse_locale_amount, normalize_key, build_index,
    parse_onboarding_csv, load_onboarding_file, find_onboarding,
)

__all__ = [
    'parse_delimited', 'parse_locale_amount', 'normalize_key', 'build_index',
    'parse_onboarding_csv', 'load_onboarding_file', 'find_onboarding',
]

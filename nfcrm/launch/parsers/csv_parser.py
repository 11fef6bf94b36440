"""Onboarding CSV parser — German intake export into a name-keyed lookup index.

The export is usually tab-separated with German number formats
("€20.000,00"). Matching against the LearningSuite roster is by name only,
so every key goes through normalize_key().
"""

import os
import re
import math

from core.utils.logging_config import get_logger
from ..models import OnboardingRecord, OnboardingParseResult
from .utils import safe_str

logger = get_logger('nfcrm.launch.parsers.csv')

# Export header → OnboardingRecord field
COLUMN_MAP = {
    'Vorname': 'vorname',
    'Nachname': 'nachname',
    'Aktuell Monatsumsatz': 'aktueller_monatsumsatz',
    'Ziel Monatsumsatz Zahl': 'ziel_monatsumsatz',
    'Genervt': 'was_nervt_am_meisten',
    'Problem': 'groesstes_problem',
    'Ziel': 'groesstes_ziel_warum',
    'Wie bist du auf das Mentoring aufmerksam geworden': 'wie_aufmerksam',
}
AMOUNT_FIELDS = {'aktueller_monatsumsatz', 'ziel_monatsumsatz'}

_AMOUNT_JUNK = re.compile(r'[€$\s"\']')
_QUOTES = '"\''


def _strip_quotes(cell):
    cell = cell.strip()
    if cell[:1] in _QUOTES:
        cell = cell[1:]
    if cell[-1:] in _QUOTES:
        cell = cell[:-1]
    return cell


def detect_delimiter(header_line):
    if '\t' in header_line:
        return '\t'
    return ';' if ';' in header_line else ','


def parse_delimited(text):
    """Parse delimited text into row dicts keyed by header.

    Short rows are padded with '' instead of being rejected.
    """
    lines = [line for line in re.split(r'\r?\n', text or '') if line.strip()]
    if len(lines) < 2:
        return []

    delimiter = detect_delimiter(lines[0])
    headers = [_strip_quotes(h) for h in lines[0].split(delimiter)]

    rows = []
    for line in lines[1:]:
        values = [_strip_quotes(v) for v in line.split(delimiter)]
        rows.append({h: (values[i] if i < len(values) else '') for i, h in enumerate(headers)})
    return rows


def parse_locale_amount(raw):
    """Parse a euro amount in German or plain notation to a rounded int.

    "€20.000,00" -> 20000, "10000" -> 10000, "" -> None, "abc" -> None
    """
    if raw is None:
        return None
    cleaned = _AMOUNT_JUNK.sub('', str(raw))
    if not cleaned:
        return None
    if ',' in cleaned:
        # 1.000,00 -> 1000.00
        cleaned = cleaned.replace('.', '').replace(',', '.', 1)
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    # half away from zero: 2.5 -> 3, -2.5 -> -3
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def normalize_key(first, last):
    """Case- and whitespace-insensitive name key: ("Abdullah Sardar", "Mousa") -> "abdullahsardar|mousa"."""
    v = re.sub(r'\s+', '', (first or '').lower())
    n = re.sub(r'\s+', '', (last or '').lower())
    return f'{v}|{n}'


def _map_row(row):
    """Row dict -> OnboardingRecord, or None when a name is missing."""
    vorname = safe_str(row.get('Vorname'))
    nachname = safe_str(row.get('Nachname'))
    if not vorname or not nachname:
        return None

    data = {'vorname': vorname, 'nachname': nachname}
    for header, field_name in COLUMN_MAP.items():
        if field_name in data:
            continue
        val = row.get(header)
        data[field_name] = parse_locale_amount(val) if field_name in AMOUNT_FIELDS else safe_str(val)
    return OnboardingRecord(**data)


def build_index(rows):
    """Index rows by normalized name. Bad rows are recorded, never fatal."""
    result = OnboardingParseResult(total_rows=len(rows))
    for i, row in enumerate(rows):
        try:
            record = _map_row(row)
            if record:
                result.index[normalize_key(record.vorname, record.nachname)] = record
                result.valid_rows += 1
        except Exception as e:
            # +2: header is line 1
            result.errors.append(f'Row {i + 2}: {str(e)[:200]}')
    if result.errors:
        logger.warning(f'{len(result.errors)} onboarding rows could not be read')
    return result


def parse_onboarding_csv(text):
    return build_index(parse_delimited(text))


def load_onboarding_file(file_path):
    """Read an onboarding export from disk (.xlsx/.xls via pandas, otherwise delimited text)."""
    ext = os.path.splitext(file_path)[1].lower()
    if ext in ('.xlsx', '.xls'):
        import pandas as pd
        df = pd.read_excel(file_path, dtype=str, keep_default_na=False)
        df.columns = [str(c).strip() for c in df.columns]
        return build_index(df.to_dict('records'))
    with open(file_path, encoding='utf-8-sig') as f:
        return parse_onboarding_csv(f.read())


def find_onboarding(index, first, last):
    return index.get(normalize_key(first, last))

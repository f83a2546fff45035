"""
Operator/biller name matching.

Vendor listings name operators loosely ("MTN Nigeria", "Globacom Limited",
"Etisalat (9mobile)"), so catalog labels are matched by substring first and
then through a static alias table.
"""

from typing import Dict, Iterable, Optional, Tuple

# Canonical key -> accepted spellings in vendor names.
# Order matters: the first key contained in the target label is used, so
# longer keys that contain a shorter key come first (kaedco before aedc,
# ibedc before bedc).
OPERATOR_ALIASES: Dict[str, Tuple[str, ...]] = {
    'mtn': ('mtn', 'mobile telecommunications network'),
    'glo': ('glo', 'globacom'),
    'airtel': ('airtel', 'airtel nigeria'),
    '9mobile': ('9mobile', '9 mobile', 'etisalat'),
    'dstv': ('dstv', 'd-stv', 'multichoice'),
    'gotv': ('gotv', 'go-tv', 'go tv'),
    'startimes': ('startimes', 'star times', 'star-times'),
    'kaedco': ('kaedco', 'kaduna'),
    'aedc': ('aedc', 'abuja'),
    'ekedc': ('ekedc', 'eko'),
    'ikedc': ('ikedc', 'ikeja'),
    'ibedc': ('ibedc', 'ibadan'),
    'bedc': ('bedc', 'benin'),
    'eedc': ('eedc', 'enugu'),
    'phed': ('phed', 'port harcourt'),
    'kedco': ('kedco', 'kano'),
    'jed': ('jed', 'jos'),
    'yedc': ('yedc', 'yola'),
}


def _normalize(value: Optional[str]) -> str:
    if value is None:
        return ''
    return str(value).strip().lower()


def matches(candidate_name: Optional[str], target_label: Optional[str], aliases=None) -> bool:
    """
    True if the vendor `candidate_name` plausibly names `target_label`.

    matches('MTN Nigeria PLC', 'MTN')    -> True   (substring)
    matches('Globacom Limited', 'GLO')   -> True
    matches('DStv Nigeria', 'GOtv')      -> False  (alias set for gotv not present)
    """
    candidate = _normalize(candidate_name)
    target = _normalize(target_label)
    if not candidate or not target:
        return False

    table = OPERATOR_ALIASES if aliases is None else aliases
    key = _alias_key(target, table)

    if key is not None and _shadowed_by_longer_key(candidate, target, key, table):
        return False

    if target in candidate or candidate in target:
        return True

    if key is not None:
        return any(alias in candidate for alias in table[key])

    return False


def _alias_key(target: str, table) -> Optional[str]:
    """First alias-table key contained in the target label."""
    for key in table:
        if key in target:
            return key
    return None


def _shadowed_by_longer_key(candidate: str, target: str, key: str, table) -> bool:
    """
    True when the candidate names a different operator whose key contains ours
    ('ibedc' for 'bedc', 'kaedco' for 'aedc').
    """
    return any(
        other != key and key in other and other in candidate and other not in target
        for other in table
    )


def matches_any(candidate_name: Optional[str], target_labels: Iterable[Optional[str]], aliases=None) -> bool:
    """True if the candidate matches at least one of the labels."""
    return any(matches(candidate_name, label, aliases) for label in target_labels if label)

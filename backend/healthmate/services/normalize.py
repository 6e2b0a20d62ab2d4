# backend/healthmate/services/normalize.py
import re
from healthmate.schemas import AS_PRESCRIBED

DOSE_UNIT_RE = re.compile(r"mg|ml|g|mcg|iu", re.IGNORECASE)

# Checked in order, first match wins
FREQUENCY_RULES = [
    (re.compile(r"once.*day|\b1\b.*day|\bOD\b", re.IGNORECASE), "Once daily"),
    (re.compile(r"twice.*day|\b2\b.*day|\bBD\b", re.IGNORECASE), "Twice daily"),
    (re.compile(r"thrice.*day|\b3\b.*day|\bTDS\b", re.IGNORECASE), "Thrice daily"),
    (re.compile(r"four.*day|\b4\b.*day|\bQID\b", re.IGNORECASE), "Four times daily"),
]

DURATION_RE = re.compile(r"(\d+)\s*(day|week|month)", re.IGNORECASE)


def extract_frequency(text: str) -> str:
    """Map a span of prescription text to a human readable frequency."""
    for pattern, label in FREQUENCY_RULES:
        if pattern.search(text):
            return label
    return AS_PRESCRIBED


def extract_duration(text: str) -> str:
    """'for 5 days' -> '5 days'. Units are always pluralized."""
    m = DURATION_RE.search(text)
    if not m:
        return AS_PRESCRIBED
    return f"{m.group(1)} {m.group(2).lower()}s"


def complete_dosage_unit(dosage) -> str:
    """
    Normalize a captured dosage string. Empty -> 'As prescribed',
    a bare magnitude gets 'mg' appended.
    """
    if not dosage:
        return AS_PRESCRIBED
    dosage = dosage.strip()
    if not dosage:
        return AS_PRESCRIBED
    if not DOSE_UNIT_RE.search(dosage):
        dosage += "mg"
    return dosage


def parse_frequency(frequency: str) -> str:
    """
    Convert an extracted frequency label into a medicine list schedule code.
    """
    freq = (frequency or "").lower()
    if "once" in freq:
        return "once_daily"
    if "twice" in freq:
        return "twice_daily"
    if "thrice" in freq or "three" in freq:
        return "thrice_daily"
    return "as_needed"

# backend/healthmate/services/extract.py
import re
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple
from healthmate.schemas import AS_PRESCRIBED, NOT_SPECIFIED, CandidateMedicine, ExtractionResult
from healthmate.services.normalize import complete_dosage_unit, extract_duration, extract_frequency

log = logging.getLogger("extract")

SKIP_WORDS = frozenset([
    "patient", "doctor", "hospital", "clinic", "date", "prescription", "name", "age",
    "address", "phone", "email", "diagnosis", "advice", "follow", "signature",
])

MEDICINE_KEYWORDS = frozenset([
    "tab", "cap", "syrup", "tablet", "capsule", "mg", "ml",
    "injection", "inj", "drops", "ointment", "cream",
])

UNABLE_TO_EXTRACT = "Unable to extract"

SENTINEL = CandidateMedicine(
    name=UNABLE_TO_EXTRACT,
    dosage="Please enter manually - OCR could not identify medicines",
    frequency=AS_PRESCRIBED,
    duration=AS_PRESCRIBED,
)

DOCTOR_TITLE_RE = re.compile(r"\bDr\.?\s+[A-Z]")
DOCTOR_NAME_RE = re.compile(r"Dr\.?\s+([A-Z][a-z]+\s+[A-Z][a-z]+)")
HOSPITAL_KEYWORDS = r"(?:Hospital|Clinic|Medical Center|Healthcare)"
FALLBACK_DOSE_RE = re.compile(r"\d+\s*(?:mg|ml|g|mcg)", re.IGNORECASE)

DOSE = r"\d+\s*(?i:mg|ml|g|mcg|iu)"


@dataclass(frozen=True)
class ExtractionOptions:
    min_name_length: int = 3
    min_fallback_token_length: int = 4
    hospital_context_chars: int = 50
    require_medicine_keyword: bool = False


DEFAULT_OPTIONS = ExtractionOptions()


@dataclass(frozen=True)
class Strategy:
    """A named pattern; group 1 is the name, group 2 (if any) the dosage."""
    label: str
    pattern: "re.Pattern"

    def matches(self, line: str) -> Iterator[Tuple[str, Optional[str]]]:
        for m in self.pattern.finditer(line):
            dosage = m.group(2) if self.pattern.groups > 1 else None
            yield m.group(1), dosage


# Priority order matters only for de-duplication ties
STRATEGIES = (
    # "Paracetamol 500mg", "Paracetamol - 500 mg"
    Strategy("name_dose", re.compile(r"([a-zA-Z]{3,})\s*[-:]?\s*(" + DOSE + r")")),
    # "Tab. Paracetamol 500mg", "cap amoxicillin"; longest prefix first
    Strategy("form_prefix", re.compile(
        r"\b(?i:Tablet|Capsule|Syrup|Tab|Cap|Inj)\b[.\s]*([a-zA-Z]{3,})\s*(" + DOSE + r")?"
    )),
    # "paracetamol500" in any case, "Paracetamol 500" only when capitalized
    Strategy("name_digits", re.compile(
        r"([a-zA-Z]{3,}(?=\d)|[A-Z][a-zA-Z]{2,})\s*(\d+)\b(?!\s*(?i:day|week|month))"
    )),
    # Bare capitalized name, one or two words
    Strategy("bare_name", re.compile(r"\b([A-Z][a-zA-Z]{3,}(?:\s+[A-Z][a-zA-Z]+)?)\b")),
)


def normalize_lines(raw_text: str) -> List[str]:
    """Split OCR text into trimmed, non-empty lines."""
    if not raw_text:
        return []
    lines = [line.strip() for line in raw_text.splitlines()]
    return [line for line in lines if line]


def has_skip_word(line: str) -> bool:
    lower = line.lower()
    return any(word in lower for word in SKIP_WORDS)


def has_medicine_keyword(line: str) -> bool:
    lower = line.lower()
    return any(keyword in lower for keyword in MEDICINE_KEYWORDS)


def is_eligible_line(line: str, options: ExtractionOptions = DEFAULT_OPTIONS) -> bool:
    """
    Coarse filter for administrative lines. A skip-word anywhere in the line
    rejects it, even when it also carries a medicine.
    """
    if has_skip_word(line) or DOCTOR_TITLE_RE.search(line):
        return False
    if options.require_medicine_keyword:
        return has_medicine_keyword(line)
    return True


def clean_name(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9\s]", "", name or "").strip()


def _infer(infer, lines: List[str], index: int) -> str:
    """Infer a field from the line, falling back to the next line."""
    value = infer(lines[index])
    if value == AS_PRESCRIBED and index + 1 < len(lines):
        value = infer(lines[index + 1])
    return value


def _add_unique(medicines: List[CandidateMedicine], seen: set, candidate: CandidateMedicine) -> None:
    key = candidate.name.lower()
    if key in seen:
        return
    seen.add(key)
    medicines.append(candidate)


def pattern_parse(lines: List[str], options: ExtractionOptions = DEFAULT_OPTIONS) -> List[CandidateMedicine]:
    """
    Run every strategy over every eligible line and pool the matches,
    first occurrence of a name wins.
    """
    medicines: List[CandidateMedicine] = []
    seen = set()
    for index, line in enumerate(lines):
        if not is_eligible_line(line, options):
            log.debug("Skipping line %d: %r", index, line)
            continue
        if not has_medicine_keyword(line):
            log.debug("No medicine keyword on line %d: %r", index, line)

        for strategy in STRATEGIES:
            for raw_name, raw_dosage in strategy.matches(line):
                name = clean_name(raw_name)
                if len(name) < options.min_name_length or name.lower() in SKIP_WORDS:
                    continue
                _add_unique(medicines, seen, CandidateMedicine(
                    name=name,
                    dosage=complete_dosage_unit(raw_dosage),
                    frequency=_infer(extract_frequency, lines, index),
                    duration=_infer(extract_duration, lines, index),
                ))
    return medicines


def fallback_parse(lines: List[str], options: ExtractionOptions = DEFAULT_OPTIONS) -> List[CandidateMedicine]:
    """
    Aggressive last resort: any capitalized token long enough to be a name,
    with the following token taken as dosage when it looks like one.
    """
    medicines: List[CandidateMedicine] = []
    seen = set()
    min_len = options.min_fallback_token_length
    for line in lines:
        if not is_eligible_line(line, options):
            continue
        words = line.split()
        for idx, word in enumerate(words):
            if len(word) < min_len or not word[0].isupper():
                continue
            clean_word = re.sub(r"[^A-Za-z0-9]", "", word)
            if len(clean_word) < min_len or clean_word.lower() in SKIP_WORDS:
                continue

            dosage = AS_PRESCRIBED
            if idx + 1 < len(words) and FALLBACK_DOSE_RE.search(words[idx + 1]):
                dosage = words[idx + 1]

            _add_unique(medicines, seen, CandidateMedicine(
                name=clean_word,
                dosage=dosage,
                frequency=extract_frequency(line),
                duration=extract_duration(line),
            ))
    return medicines


def extract_medicines(raw_text: str, options: Optional[ExtractionOptions] = None) -> List[CandidateMedicine]:
    """
    Main extraction entry point. Never empty: when nothing is recognised the
    result is the single 'Unable to extract' sentinel.
    """
    options = options or DEFAULT_OPTIONS
    lines = normalize_lines(raw_text)
    log.debug("Extracted text lines: %s", lines)

    medicines = pattern_parse(lines, options)
    if not medicines:
        log.info("No medicines found with patterns, trying aggressive extraction")
        medicines = fallback_parse(lines, options)

    if not medicines:
        log.info("OCR text yielded no medicines")
        return [SENTINEL.model_copy()]

    log.debug("Extracted medicines: %s", [m.name for m in medicines])
    return medicines


def is_extraction_failed(medicines) -> bool:
    """True when the list is the sentinel-only result of a failed extraction."""
    if len(medicines) != 1:
        return False
    first = medicines[0]
    name = first.get("name") if isinstance(first, dict) else getattr(first, "name", None)
    return name == UNABLE_TO_EXTRACT


def extract_doctor_name(raw_text: str) -> str:
    m = DOCTOR_NAME_RE.search(raw_text or "")
    return m.group(1) if m else NOT_SPECIFIED


def extract_hospital_name(raw_text: str, options: Optional[ExtractionOptions] = None) -> str:
    options = options or DEFAULT_OPTIONS
    pattern = HOSPITAL_KEYWORDS + r"[\s\S]{0,%d}" % options.hospital_context_chars
    m = re.search(pattern, raw_text or "", re.IGNORECASE)
    return m.group(0).strip() if m else NOT_SPECIFIED


def extract_prescription(raw_text: str, options: Optional[ExtractionOptions] = None) -> ExtractionResult:
    medicines = extract_medicines(raw_text, options)
    return ExtractionResult(
        medicines=medicines,
        doctor_name=extract_doctor_name(raw_text),
        hospital_name=extract_hospital_name(raw_text, options),
        extraction_failed=is_extraction_failed(medicines),
    )

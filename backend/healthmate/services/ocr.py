# backend/healthmate/services/ocr.py
import io
import logging
from typing import Optional
from PIL import Image, UnidentifiedImageError
import pytesseract

log = logging.getLogger("ocr")

# Page segmentation 3 = fully automatic, restricted to characters seen on prescriptions
CHAR_WHITELIST = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789.,:-/"
TESSERACT_CONFIG = f"--psm 3 -c tessedit_char_whitelist={CHAR_WHITELIST}"


class OcrError(Exception):
    pass


def image_bytes_to_text(image_bytes: bytes, lang: str = "eng", tesseract_cmd: Optional[str] = None) -> str:
    """
    Run Tesseract over an uploaded prescription image and return the raw text.
    """
    if tesseract_cmd:
        pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    try:
        img = Image.open(io.BytesIO(image_bytes)).convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        raise OcrError(f"Could not decode image: {e}") from e

    log.info("Processing prescription image with OCR (%dx%d)", img.width, img.height)
    try:
        text = pytesseract.image_to_string(img, lang=lang, config=TESSERACT_CONFIG)
    except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
        raise OcrError(f"Tesseract failed: {e}") from e

    log.info("OCR completed. Extracted text length: %d", len(text))
    log.debug("First 500 characters: %s", text[:500])
    return text

"""Spell out VND amounts in Vietnamese for printed vouchers."""

from __future__ import annotations

import math

from . import log


ZERO_AMOUNT_WORDS = "Không đồng"
CURRENCY_NOUN = " đồng"
NEGATIVE_WORD = "Âm "

_DIGIT_WORDS = (" không", " một", " hai", " ba", " bốn", " năm", " sáu", " bảy", " tám", " chín")
_GROUP_SCALES = ("", " nghìn", " triệu")
_BILLION = " tỷ"


def _scale_suffix(index: int) -> str:
    # 0 -> "", 1 -> nghìn, 2 -> triệu, 3 -> tỷ, 4 -> nghìn tỷ, 6 -> tỷ tỷ ...
    return _GROUP_SCALES[index % 3] + _BILLION * (index // 3)


def read_group(group: str) -> str:
    """Read a zero-padded three digit group, e.g. ``"015"``.

    Every non-empty reading starts with the hundreds digit, so a group such
    as ``"015"`` reads ``" không trăm mười lăm"``. ``"000"`` reads as ``""``.
    """

    if group == "000":
        return ""

    hundreds, tens, units = (int(digit) for digit in group)
    words = _DIGIT_WORDS[hundreds] + " trăm"

    if tens == 0 and units == 0:
        return words
    if tens == 0:
        return words + " linh" + _DIGIT_WORDS[units]

    words += " mười" if tens == 1 else _DIGIT_WORDS[tens] + " mươi"

    if units == 1:
        words += " mốt" if tens > 1 else " một"
    elif units == 5:
        words += " lăm"
    elif units != 0:
        words += _DIGIT_WORDS[units]
    return words


def amount_to_words(amount: float) -> str:
    """Return the Vietnamese reading of ``amount`` ending in ``đồng``.

    The amount is rounded half-up to whole dong. Negative amounts are read
    as their absolute value prefixed with ``"Âm "``.

    Raises:
        ValueError: If ``amount`` is NaN or infinite.
    """

    if not math.isfinite(amount):
        log.error("Cannot spell non-finite amount %r", amount)
        raise ValueError(f"Amount must be a finite number, got {amount!r}")

    whole = int(math.floor(abs(amount) + 0.5))
    if whole == 0:
        return ZERO_AMOUNT_WORDS

    digits = str(whole)
    digits = digits.zfill(len(digits) + (-len(digits)) % 3)

    result = ""
    for index, end in enumerate(range(len(digits), 0, -3)):
        reading = read_group(digits[end - 3:end])
        if reading:
            result = reading + _scale_suffix(index) + result

    result = result.strip()
    if result.startswith("không trăm"):
        result = result[len("không trăm"):].strip()
    if result.startswith("linh"):
        result = result[len("linh"):].strip()

    words = result[0].upper() + result[1:] + CURRENCY_NOUN
    if amount < 0:
        return NEGATIVE_WORD + words[0].lower() + words[1:]
    return words

"""
Field extraction for mobile shop invoices.

This module provides functionality to:
- Extract header fields (invoice number, date, vendor, customer, totals)
  with keyword-anchored patterns
- Parse free-form item rows into brand / model / variant and the
  quantity, rate and amount columns
- Score header extraction by the share of recognized fields found

Fields that cannot be matched are left as None; nothing is guessed.
"""

import re
from decimal import Decimal
from typing import Optional, Union

from .config import (
    COMPANY_MARKERS,
    CUSTOMER_FALLBACK_PATTERNS,
    CUSTOMER_LABELS,
    DATE_LABELS,
    GSTIN_PATTERN,
    INVOICE_NUMBER_LABELS,
    MAX_QUANTITY,
    NON_ITEM_KEYWORDS,
    TAX_LABELS,
    TOTAL_LABELS,
    UNIT_TOKENS,
    VENDOR_LABELS,
    logger,
)
from .lexicon import BrandLexicon, get_default_lexicon, normalize_variant_token
from .normalizer import ensure_normalized, parse_amount, parse_date
from .schemas import (
    RECOGNIZED_HEADER_FIELDS,
    InvoiceData,
    NormalizedText,
    ProductItem,
)


def _label(label: str) -> str:
    """Regex for a label that starts and ends on a word edge."""
    body = r"\s*".join(re.escape(word) for word in label.split())
    return r"(?<![A-Za-z])" + body + r"(?![A-Za-z])"


_AMOUNT = r"(\d{1,3}(?:,\d{2,3})+(?:\.\d+)?|\d+(?:\.\d+)?)"

_DATE_VALUE = (
    r"(\d{1,2}[-/][A-Za-z]{3,9}[-/]\d{2,4}"
    r"|\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}"
    r"|\d{4}-\d{1,2}-\d{1,2}"
    r"|\d{1,2}\s+[A-Za-z]{3,9},?\s+\d{4})"
)

_GSTIN = re.compile(GSTIN_PATTERN, re.IGNORECASE)
_GSTIN_LABEL = re.compile(r"(?i)\b(?:gstin|gst\s*no|gst)\b\.?\s*[:\-]?\s*")


# ============================================================================
# Header Field Extraction Helpers
# ============================================================================

def extract_invoice_number(text: str) -> Optional[str]:
    """
    Extract the invoice number following one of the invoice number labels.

    The earliest labeled value in the text that contains a digit wins;
    label order only breaks ties at the same position.
    """
    best: Optional[tuple[int, int, str]] = None

    for priority, label in enumerate(INVOICE_NUMBER_LABELS):
        pattern = _label(label) + r"\.?\s*[:#\-]?\s*([A-Za-z0-9][A-Za-z0-9\-_/]*)"
        for match in re.finditer(pattern, text, re.IGNORECASE):
            value = match.group(1).strip()
            if any(ch.isdigit() for ch in value):
                key = (match.start(), priority, value)
                if best is None or key < best:
                    best = key
                break

    return best[2] if best else None


def extract_date(text: str) -> Optional[str]:
    """Extract the invoice date as printed, anchored on a date label."""
    for label in DATE_LABELS:
        pattern = _label(label) + r"\s*[:.\-]?\s*" + _DATE_VALUE
        match = re.search(pattern, text, re.IGNORECASE)
        if match:
            return match.group(1).strip()

    return None


def _extract_labeled_amount(text: str, labels: list[str]) -> Optional[Decimal]:
    for label in labels:
        prefix = _label(label)
        if label == "total":
            # Plain "total" must not be a sub total or a quantity/tax total
            prefix = (
                r"(?<!sub)(?<!sub\s)" + prefix
                + r"(?!\s*(?:qty|quantity|items?|tax|gst|cgst|sgst|igst))"
            )
        pattern = prefix + r"[^\d\n]{0,20}?" + _AMOUNT
        match = re.search(pattern, text, re.IGNORECASE)
        if match:
            amount = parse_amount(match.group(1))
            if amount is not None:
                return amount

    return None


def extract_total_amount(text: str) -> Optional[Decimal]:
    """Extract the invoice total (grand total before plain total)."""
    return _extract_labeled_amount(text, TOTAL_LABELS)


def extract_tax_amount(text: str) -> Optional[Decimal]:
    """Extract the total tax amount when it is printed with a label."""
    return _extract_labeled_amount(text, TAX_LABELS)


def _clean_party_name(value: str) -> Optional[str]:
    """Strip GSTINs, labels and stray punctuation from a party name."""
    value = _GSTIN.sub("", value)
    value = _GSTIN_LABEL.sub("", value)
    value = value.strip(" :-,|")
    if sum(1 for ch in value if ch.isalpha()) < 2:
        return None
    return value


def _cut_at_other_section(value: str) -> str:
    """A line may hold both sections ("Sold By: X Bill To: Y"); keep the first."""
    for label in VENDOR_LABELS + CUSTOMER_LABELS:
        match = re.search(_label(label), value, re.IGNORECASE)
        if match and match.start() > 0:
            value = value[:match.start()]
    return value


def _is_section_line(line: str) -> bool:
    return any(
        re.search(_label(label), line, re.IGNORECASE)
        for label in VENDOR_LABELS + CUSTOMER_LABELS
    )


def extract_party_name(lines: list[str], labels: list[str]) -> tuple[Optional[str], Optional[int]]:
    """
    Extract a party name from the section introduced by one of the labels.

    The name is the text after the label on the same line, or the next
    non-empty line when the label stands alone.

    Returns:
        Tuple of (name, index of the marker line); both None if no marker
    """
    for i, line in enumerate(lines):
        for label in labels:
            pattern = (
                _label(label)
                + r"(?:\s*\([^)]*\))?(?:\s+(?:name|details))?\s*[:\-]?\s*(.*)$"
            )
            match = re.search(pattern, line, re.IGNORECASE)
            if not match:
                continue

            remaining = _cut_at_other_section(match.group(1))
            name = _clean_party_name(remaining)
            if name is None and i + 1 < len(lines) and not _is_section_line(lines[i + 1]):
                name = _clean_party_name(lines[i + 1])
            return name, i

    return None, None


def _is_company_line(line: str) -> bool:
    lowered = line.lower()
    if any(re.search(_label(marker), lowered) for marker in COMPANY_MARKERS):
        return True
    return bool(_GSTIN.search(line))


def find_company_line(lines: list[str], stop: Optional[int] = None) -> tuple[Optional[str], Optional[int]]:
    """
    Find the first company-like line (Pvt/Ltd/LLP or a GSTIN).

    A line holding only a GSTIN resolves to the line above it, which is
    where shops print their name.
    """
    end = len(lines) if stop is None else stop
    for i in range(end):
        line = lines[i]
        if not _is_company_line(line):
            continue
        name = _clean_party_name(line)
        if name is not None:
            return name, i
        if i > 0:
            previous = _clean_party_name(lines[i - 1])
            if previous is not None:
                return previous, i - 1
    return None, None


def find_labeled_customer(lines: list[str], anchor: Optional[int]) -> Optional[str]:
    """Find the labeled name line ("Name:", "M/s", "Mr.") nearest the anchor line."""
    anchor = anchor or 0
    best: Optional[tuple[int, str]] = None

    for i, line in enumerate(lines):
        if i == anchor:
            continue
        for pattern in CUSTOMER_FALLBACK_PATTERNS:
            match = re.search(pattern, line, re.IGNORECASE)
            if not match:
                continue
            name = _clean_party_name(match.group(1))
            if name is not None:
                distance = abs(i - anchor)
                if best is None or distance < best[0]:
                    best = (distance, name)
            break

    return best[1] if best else None


def extract_gstins(lines: list[str], customer_index: Optional[int]) -> tuple[Optional[str], Optional[str]]:
    """
    Extract vendor and customer GSTINs.

    GSTINs printed before the customer section belong to the vendor and
    those after it to the customer; without a section, the first is the
    vendor's and the second the customer's.
    """
    found: list[tuple[int, str]] = []
    for i, line in enumerate(lines):
        for match in _GSTIN.finditer(line):
            found.append((i, match.group(0).upper()))

    if not found:
        return None, None

    if customer_index is None:
        vendor = found[0][1]
        customer = found[1][1] if len(found) > 1 else None
        return vendor, customer

    vendor = next((g for i, g in found if i < customer_index), None)
    customer = next((g for i, g in found if i >= customer_index), None)
    return vendor, customer


# ============================================================================
# Product Line Helpers
# ============================================================================

_NUMERIC_TOKEN = re.compile(r"^(?:rs\.?|₹)?(?:\d{1,3}(?:,\d{2,3})+(?:\.\d+)?|\d+(?:\.\d+)?)$", re.IGNORECASE)
_QUANTITY_WITH_UNIT = re.compile(r"^(\d+(?:\.\d+)?)(" + "|".join(sorted(UNIT_TOKENS, key=len, reverse=True)) + r")\.?$", re.IGNORECASE)
_SPLIT_STORAGE = re.compile(r"\b(\d+)\s+(gb|tb)\b", re.IGNORECASE)
_TOKEN_PUNCTUATION = "()[],;:|"
_NON_ITEM = tuple(re.compile(r"(?<![a-z])" + re.escape(kw)) for kw in NON_ITEM_KEYWORDS)


def _is_decimal_looking(token: str) -> bool:
    return "." in token or "," in token


def _is_quantity_like(value: Optional[Decimal]) -> bool:
    """Quantities are small whole or one-decimal numbers."""
    if value is None or value <= 0 or value > MAX_QUANTITY:
        return False
    return (value * 10) == (value * 10).to_integral_value()


def _split_columns(tokens: list[str]) -> tuple[list[str], list[tuple[str, bool]]]:
    """
    Split row tokens into description tokens and trailing numeric columns.

    Each column is (token, followed_by_unit). A unit token ("PCS") marks
    the number to its left as the quantity.
    """
    columns: list[tuple[str, bool]] = []
    pending_unit = False
    i = len(tokens) - 1

    while i >= 0:
        token = tokens[i]
        bare = token.lower().strip(".:")

        if bare in UNIT_TOKENS:
            pending_unit = True
        elif _NUMERIC_TOKEN.match(token):
            columns.append((token, pending_unit))
            pending_unit = False
        else:
            match = _QUANTITY_WITH_UNIT.match(token)
            if not match:
                break
            columns.append((match.group(1), True))
            pending_unit = False
        i -= 1

    columns.reverse()
    return tokens[:i + 1], columns


def _assign_columns(
    columns: list[tuple[str, bool]],
) -> tuple[Optional[Decimal], Optional[Decimal], Optional[Decimal]]:
    """
    Assign numeric columns to (quantity, rate, amount).

    With a unit-marked quantity, the columns after it are rate and amount.
    Otherwise columns are right-aligned: amount, then rate, then quantity.
    """
    values = [parse_amount(token) for token, _ in columns]
    unit_marked = [i for i, (_, marked) in enumerate(columns) if marked]

    if unit_marked:
        q = unit_marked[-1]
        quantity = values[q] if _is_quantity_like(values[q]) else None
        after = values[q + 1:]
        amount = after[-1] if after else None
        rate = after[-2] if len(after) >= 2 else None
        return quantity, rate, amount

    amount = values[-1]
    rate = values[-2] if len(values) >= 2 else None
    quantity = None

    if len(values) >= 3:
        quantity = values[-3] if _is_quantity_like(values[-3]) else None
    elif len(values) == 2:
        left_token = columns[0][0]
        if not _is_decimal_looking(left_token) and _is_quantity_like(values[0]) and _is_decimal_looking(columns[1][0]):
            # "1  499.00": a bare small integer before a priced column
            quantity, rate = values[0], None

    return quantity, rate, amount


def parse_description(
    tokens: list[str],
    lexicon: BrandLexicon,
) -> tuple[Optional[str], Optional[str], Optional[str]]:
    """
    Split description tokens into brand, model and variant.

    The first lexicon hit anchors the brand; up to three following tokens,
    stopping at a storage/colour/connectivity token, form the model; the
    rest is the variant with storage normalized ("256gb" -> "256GB").
    """
    tokens = [t.strip(_TOKEN_PUNCTUATION) for t in tokens]
    tokens = [t for t in tokens if t and t not in {"-", "/", "+"}]

    for index, token in enumerate(tokens):
        entry = lexicon.match_brand(token)
        if entry is None:
            continue

        model_tokens: list[str] = []
        if lexicon.is_model_prefix(entry, token):
            model_tokens.append(token)

        j = index + 1
        limit = len(model_tokens) + 3
        if j < len(tokens) and lexicon.is_model_prefix(entry, tokens[j]):
            limit += 1

        while j < len(tokens) and len(model_tokens) < limit:
            if lexicon.is_variant_token(tokens[j]) or tokens[j].lower() in UNIT_TOKENS:
                break
            model_tokens.append(tokens[j])
            j += 1

        variant_tokens = [
            normalize_variant_token(t) for t in tokens[j:]
            if t.lower() not in UNIT_TOKENS
        ]

        return (
            entry.name,
            " ".join(model_tokens) or None,
            " ".join(variant_tokens) or None,
        )

    # No brand: only recognizable variant tokens are kept
    variant_tokens = [normalize_variant_token(t) for t in tokens if lexicon.is_variant_token(t)]
    return None, None, " ".join(variant_tokens) or None


def parse_product_line(line: str, lexicon: Optional[BrandLexicon] = None) -> Optional[ProductItem]:
    """
    Parse one text line into a ProductItem.

    A line is an item row when it has a textual prefix followed by at
    least one decimal-looking number (17,759.00). Total, tax and
    identifier lines are never item rows.

    Returns:
        ProductItem, or None if the line is not an item row
    """
    if lexicon is None:
        lexicon = get_default_lexicon()

    lowered = line.lower()
    if any(pattern.search(lowered) for pattern in _NON_ITEM):
        return None

    tokens = _SPLIT_STORAGE.sub(r"\1\2", line).split()
    description_tokens, columns = _split_columns(tokens)

    if not columns or not any(_is_decimal_looking(token) for token, _ in columns):
        return None
    if not any(any(ch.isalpha() for ch in t) for t in description_tokens):
        return None

    # Leading serial number ("1 Redmi Note 14 ...")
    if len(description_tokens) > 1 and description_tokens[0].rstrip(".)").isdigit():
        description_tokens = description_tokens[1:]

    quantity, rate, amount = _assign_columns(columns)
    brand, model, variant = parse_description(description_tokens, lexicon)

    return ProductItem(
        brand=brand,
        model=model,
        variant=variant,
        quantity=quantity,
        rate=rate,
        amount=amount,
        raw_line=line,
        description=" ".join(description_tokens),
    )


# ============================================================================
# Main Extraction Functions
# ============================================================================

def extract_invoice_fields(text: Union[str, NormalizedText, None]) -> InvoiceData:
    """
    Extract invoice header fields from OCR text.

    Args:
        text: Raw or normalized OCR text

    Returns:
        InvoiceData with unmatched fields left as None and confidence
        equal to the fraction of recognized header fields found
    """
    normalized = ensure_normalized(text)
    body = normalized.text
    lines = normalized.lines

    invoice_number = extract_invoice_number(body)
    printed_date = extract_date(body)
    parsed = parse_date(printed_date) if printed_date else None

    customer_name, customer_index = extract_party_name(lines, CUSTOMER_LABELS)
    vendor_name, vendor_index = extract_party_name(lines, VENDOR_LABELS)

    if vendor_name is None:
        vendor_name, vendor_index = find_company_line(lines, stop=customer_index)
    if customer_name is None:
        customer_name = find_labeled_customer(lines, vendor_index)

    vendor_gstin, customer_gstin = extract_gstins(lines, customer_index)

    fields = {
        "invoice_number": invoice_number,
        "date": printed_date,
        "vendor_name": vendor_name,
        "customer_name": customer_name,
        "total_amount": extract_total_amount(body),
    }
    matched = sum(1 for name in RECOGNIZED_HEADER_FIELDS if fields[name] is not None)

    invoice = InvoiceData(
        **fields,
        confidence=round(matched / len(RECOGNIZED_HEADER_FIELDS), 4),
        parsed_date=parsed,
        vendor_gstin=vendor_gstin,
        customer_gstin=customer_gstin,
        tax_amount=extract_tax_amount(body),
    )

    logger.debug(f"Header fields matched: {invoice.matched_fields()}")
    return invoice


def extract_product_lines(
    text: Union[str, NormalizedText, None],
    lexicon: Optional[BrandLexicon] = None,
) -> list[ProductItem]:
    """
    Extract product rows from OCR text, in source line order.

    Args:
        text: Raw or normalized OCR text
        lexicon: Brand table (defaults to the process-wide lexicon)

    Returns:
        One ProductItem per detected item row
    """
    if lexicon is None:
        lexicon = get_default_lexicon()

    products = []
    for line in ensure_normalized(text).lines:
        item = parse_product_line(line, lexicon)
        if item is not None:
            products.append(item)

    logger.debug(f"Extracted {len(products)} product line(s)")
    return products

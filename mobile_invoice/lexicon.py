"""
Brand lexicon for product line parsing.

The lexicon is data, not code: a table of brands with their aliases and
the tokens that begin a model name (e.g. "iPhone" for Apple). A default
table ships with the package; a JSON file named by BRAND_LEXICON_PATH
replaces it. The lexicon is loaded once and never mutated.

JSON format:

    [
        {"name": "Apple", "aliases": ["iphone"], "model_prefixes": ["iphone"]},
        {"name": "Redmi"}
    ]
"""

import json
import re
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import BRAND_LEXICON_PATH, logger


class BrandEntry(BaseModel):
    """A brand and the lowercase tokens that identify it."""
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    name: str = Field(..., min_length=1)
    aliases: tuple[str, ...] = ()
    model_prefixes: tuple[str, ...] = Field(
        (),
        description="Aliases that are also the first word of the model (iPhone, Galaxy)",
    )

    def tokens(self) -> set[str]:
        return {self.name.lower(), *(a.lower() for a in self.aliases)}


class BrandLexicon(BaseModel):
    """Immutable brand table with lookup helpers."""
    model_config = ConfigDict(frozen=True)

    brands: tuple[BrandEntry, ...]
    colors: frozenset[str] = frozenset()
    connectivity: frozenset[str] = frozenset()

    def match_brand(self, token: str) -> Optional[BrandEntry]:
        """Return the brand a description token names, if any."""
        needle = token.lower().strip(".,:;()")
        for entry in self.brands:
            if needle in entry.tokens():
                return entry
        return None

    def is_model_prefix(self, entry: BrandEntry, token: str) -> bool:
        return token.lower() in {p.lower() for p in entry.model_prefixes}

    def is_variant_token(self, token: str) -> bool:
        """Storage sizes, colours and connectivity end the model name."""
        lowered = token.lower()
        return (
            is_storage_token(token)
            or lowered in self.colors
            or lowered in self.connectivity
        )


# ============================================================================
# Variant Tokens
# ============================================================================

_STORAGE_TOKEN = re.compile(r"^(\d+(?:\.\d+)?)(gb|tb|mb)$", re.IGNORECASE)
_STORAGE_COMBO = re.compile(r"^(\d+)(?:gb)?[+/](\d+)(gb|tb)$", re.IGNORECASE)
_CONNECTIVITY_TOKEN = re.compile(r"^[345]g$", re.IGNORECASE)


def is_storage_token(token: str) -> bool:
    return bool(_STORAGE_TOKEN.match(token) or _STORAGE_COMBO.match(token))


def normalize_variant_token(token: str) -> str:
    """
    Normalize storage and connectivity tokens to uppercase units.

    "256gb" -> "256GB", "8+128gb" -> "8GB+128GB", "5g" -> "5G".
    Other tokens are returned unchanged.
    """
    match = _STORAGE_TOKEN.match(token)
    if match:
        return f"{match.group(1)}{match.group(2).upper()}"

    match = _STORAGE_COMBO.match(token)
    if match:
        unit = match.group(3).upper()
        return f"{match.group(1)}GB+{match.group(2)}{unit}"

    if _CONNECTIVITY_TOKEN.match(token):
        return token.upper()

    return token


# ============================================================================
# Default Table
# ============================================================================

DEFAULT_BRANDS: tuple[BrandEntry, ...] = (
    BrandEntry(name="Redmi"),
    BrandEntry(name="Realme"),
    BrandEntry(name="Samsung", aliases=("galaxy",), model_prefixes=("galaxy",)),
    BrandEntry(name="Vivo"),
    BrandEntry(name="Oppo"),
    BrandEntry(name="Apple", aliases=("iphone",), model_prefixes=("iphone",)),
    BrandEntry(name="OnePlus", aliases=("one+",)),
    BrandEntry(name="Xiaomi", aliases=("mi",)),
    BrandEntry(name="Poco"),
    BrandEntry(name="Motorola", aliases=("moto",)),
    BrandEntry(name="Nokia"),
    BrandEntry(name="Google", aliases=("pixel",), model_prefixes=("pixel",)),
    BrandEntry(name="Nothing"),
    BrandEntry(name="iQOO"),
    BrandEntry(name="Honor"),
    BrandEntry(name="Infinix"),
    BrandEntry(name="Tecno"),
    BrandEntry(name="Lava"),
)

DEFAULT_COLORS: frozenset[str] = frozenset({
    "black", "white", "blue", "red", "green", "silver", "gold", "grey", "gray",
    "purple", "pink", "yellow", "orange", "midnight", "starlight", "titanium",
    "graphite", "violet", "lavender", "mint", "cream", "bronze",
})

DEFAULT_CONNECTIVITY: frozenset[str] = frozenset({
    "3g", "4g", "5g", "lte", "volte", "wifi", "wi-fi", "dual-sim",
})


def build_lexicon(brands: tuple[BrandEntry, ...] = DEFAULT_BRANDS) -> BrandLexicon:
    return BrandLexicon(
        brands=brands,
        colors=DEFAULT_COLORS,
        connectivity=DEFAULT_CONNECTIVITY,
    )


def load_lexicon(path: Path) -> BrandLexicon:
    """
    Load a brand table from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a list of brand entries
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"Brand lexicon must be a JSON list: {path}")

    brands = tuple(BrandEntry.model_validate(entry) for entry in data)
    logger.info(f"Loaded {len(brands)} brands from: {path}")
    return build_lexicon(brands)


@lru_cache(maxsize=1)
def get_default_lexicon() -> BrandLexicon:
    """The process-wide lexicon, loaded once."""
    if BRAND_LEXICON_PATH:
        return load_lexicon(Path(BRAND_LEXICON_PATH))
    return build_lexicon()

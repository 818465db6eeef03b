"""
Allergen classification.

The 14 allergens that must be declared under EU regulation 1169/2011,
and parsing of Open Food Facts allergen/trace tags in several languages.
"""

from enum import Enum
from typing import Iterable, Optional


class Allergen(str, Enum):
    """EU-declarable allergen."""

    GLUTEN = "gluten"
    CRUSTACEANS = "crustaceans"
    EGGS = "eggs"
    FISH = "fish"
    PEANUTS = "peanuts"
    SOYBEANS = "soybeans"
    MILK = "milk"
    NUTS = "nuts"
    CELERY = "celery"
    MUSTARD = "mustard"
    SESAME = "sesame"
    SULPHITES = "sulphites"
    LUPIN = "lupin"
    MOLLUSCS = "molluscs"

    @classmethod
    def from_tag(cls, tag: str) -> Optional["Allergen"]:
        """Parse an OFF tag such as "en:milk" or "it:latte".

        Args:
            tag: Tag with optional "xx:" language prefix

        Returns:
            Matching allergen, or None for unknown tags

        Example:
            >>> Allergen.from_tag("en:milk")
            <Allergen.MILK: 'milk'>
            >>> Allergen.from_tag("fr:arachides")
            <Allergen.PEANUTS: 'peanuts'>
        """
        cleaned = tag.split(":")[-1].strip().lower()
        return _TAG_TABLE.get(cleaned)


def _table() -> dict[str, Allergen]:
    synonyms: dict[Allergen, tuple[str, ...]] = {
        Allergen.GLUTEN: (
            # en
            "gluten", "wheat", "cereals-containing-gluten",
            # pt
            "glutem", "trigo",
        ),
        Allergen.MILK: (
            "milk", "lactose", "dairy", "milk-and-milk-products",
            "leite", "lacticinios",
            # fr
            "lait", "produits-laitiers",
            # de
            "milch", "milchprodukte",
            # it
            "latte", "latticini",
        ),
        Allergen.EGGS: (
            "eggs", "egg",
            "ovos", "ovo",
            # es
            "huevos", "huevo",
            "oeufs", "oeuf",
            "eier", "ei",
            "uova", "uovo",
        ),
        Allergen.FISH: (
            "fish", "fishes",
            "peixe", "peixes",
            "pescado", "pescados",
            "poisson", "poissons",
            "fisch", "fische",
            "pesce", "pesci",
        ),
        Allergen.CRUSTACEANS: (
            "crustaceans", "shellfish", "shrimp", "crab", "lobster",
            "crustaceos", "camarao", "caranguejo", "lagosta",
            "mariscos",
            "crustaces",
            "krebstiere",
            "crostacei",
        ),
        Allergen.MOLLUSCS: (
            "molluscs", "mollusks", "squid", "octopus", "clams", "mussels", "oysters",
            "moluscos", "lulas", "polvo", "ameijoas", "mexilhoes", "ostras",
            "mollusques",
            "weichtiere",
            "molluschi",
        ),
        Allergen.NUTS: (
            "nuts", "tree-nuts", "almonds", "hazelnuts", "walnuts",
            "cashews", "pecans", "pistachios", "macadamia",
            "frutos-de-casca-rija", "amendoas", "avelas", "nozes", "cajus",
            "almendras", "avellanas", "nueces",
            "fruits-a-coque", "amandes", "noisettes", "noix",
            "schalenfruchte", "mandeln", "haselnusse", "walnusse",
            "frutta-a-guscio", "mandorle", "nocciole", "noci",
        ),
        Allergen.PEANUTS: (
            "peanuts", "peanut", "groundnuts",
            "amendoins", "amendoim",
            "cacahuetes", "cacahuete", "mani",
            "arachides", "arachide",
            "erdnusse", "erdnuss",
            "arachidi",
        ),
        Allergen.SOYBEANS: ("soybeans", "soya", "soy", "soja"),
        Allergen.CELERY: ("celery", "aipo", "celeri", "sellerie", "sedano"),
        Allergen.MUSTARD: ("mustard", "mostarda", "moutarde", "senf", "senape"),
        Allergen.SESAME: ("sesame-seeds", "sesame", "sesamo", "ajonjoli"),
        Allergen.SULPHITES: (
            "sulphur-dioxide-and-sulphites", "sulphites", "sulfites", "sulphur-dioxide",
            "sulfitos", "dioxido-de-enxofre",
            "schwefeldioxid", "sulphite",
        ),
        Allergen.LUPIN: ("lupin", "lupine", "lupins", "tremoco", "tremocos", "lupinen"),
    }
    table: dict[str, Allergen] = {}
    for allergen, names in synonyms.items():
        for name in names:
            table.setdefault(name, allergen)
    return table


_TAG_TABLE = _table()

_DECLARATION_ORDER = {allergen: index for index, allergen in enumerate(Allergen)}


def parse_allergen_tags(tags: Optional[Iterable[str]]) -> list[Allergen]:
    """Parse tags into a de-duplicated list in declaration order.

    Unknown tags are skipped.

    Example:
        >>> parse_allergen_tags(["en:milk", "en:nuts", "en:milk", "en:cocoa"])
        [<Allergen.MILK: 'milk'>, <Allergen.NUTS: 'nuts'>]
    """
    found = {a for a in (Allergen.from_tag(tag) for tag in tags or []) if a is not None}
    return sorted(found, key=_DECLARATION_ORDER.__getitem__)

"""Deterministic keyword classifier used when the reasoning service cannot answer.

Rules are evaluated in order against the lower-cased pathway name and the first
match wins. Rule order is part of the contract: reordering changes results for
names that match several rules (e.g. "RNA metabolism" is Metabolism because the
metabolism rule precedes the transcription rule).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from .models import Classification, is_resolved
from .vocabulary import Lineage, lineage_for


@dataclass(frozen=True)
class KeywordRule:
    """Map any of ``keywords`` in a pathway name to a class/subclass pair.

    Attributes:
        keywords: Lower-case substrings that trigger the rule.
        class_name: Class assigned when the rule matches.
        subclass: Subclass assigned when no lineage override applies.
        lineage_subclasses: Subclass replacements for specific species lineages.
    """

    keywords: Tuple[str, ...]
    class_name: str
    subclass: str
    lineage_subclasses: Mapping[Lineage, str] = field(default_factory=dict)

    def matches(self, lowered_name: str) -> bool:
        return any(keyword in lowered_name for keyword in self.keywords)

    def resolve(self, lineage: Optional[Lineage]) -> Classification:
        subclass = self.subclass
        if lineage is not None:
            subclass = self.lineage_subclasses.get(lineage, subclass)
        return Classification(class_name=self.class_name, subclass=subclass)


DEFAULT_CLASSIFICATION = Classification(class_name="Metabolism", subclass="Metabolism of proteins")

DEFAULT_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(("metabolism", "metabolic"), "Metabolism", "Metabolism of proteins"),
    KeywordRule(
        ("signaling", "signal"),
        "Signal Transduction",
        "Intracellular signaling by second messengers",
    ),
    KeywordRule(("immune",), "Immune System", "Innate Immune System"),
    KeywordRule(
        ("transcription", "rna"),
        "Gene expression (Transcription)",
        "RNA Polymerase II Transcription",
    ),
    KeywordRule(
        ("neuron", "synapse"),
        "Neuronal System",
        "Transmission across Chemical Synapses",
    ),
    KeywordRule(
        ("development",),
        "Developmental Biology",
        "Nervous system development",
        lineage_subclasses={
            "plant": "Plant development",
            "single_celled_eukaryote": "Cell differentiation",
        },
    ),
    KeywordRule(("cell cycle",), "Cell Cycle", "Mitotic Cell Cycle"),
    KeywordRule(("apoptosis", "death"), "Programmed Cell Death", "Apoptosis"),
)


class FallbackClassifier:
    """Classify pathways from their names alone.

    The classifier is a pure function of its inputs: it holds no mutable state,
    never raises for string input, and never returns the ``Unknown`` sentinel.
    """

    def __init__(
        self,
        rules: Tuple[KeywordRule, ...] = DEFAULT_RULES,
        default: Classification = DEFAULT_CLASSIFICATION,
    ) -> None:
        self._rules = rules
        self._default = default

    @property
    def rules(self) -> Tuple[KeywordRule, ...]:
        """Return the ordered rule list."""
        return self._rules

    def classify(self, pathway_name: str, species: Optional[str] = None) -> Classification:
        """Return the first matching rule's classification, or the default pair.

        Args:
            pathway_name: Pathway name to classify.
            species: Optional species used to narrow the subclass vocabulary.

        Returns:
            Classification: Non-sentinel class/subclass pair.
        """
        lowered = (pathway_name or "").lower()
        lineage = lineage_for(species)
        for rule in self._rules:
            if rule.matches(lowered):
                return rule.resolve(lineage)
        return self._default

    def complete(
        self,
        pathway_name: str,
        species: Optional[str],
        class_name: Optional[str],
        subclass: Optional[str],
    ) -> Tuple[Classification, bool]:
        """Fill only the missing fields of a partial classification.

        Returns:
            tuple[Classification, bool]: Completed pair and whether the fallback was used.
        """
        partial = Classification(class_name=class_name or "", subclass=subclass or "")
        if partial.is_complete:
            return partial, False

        fallback = self.classify(pathway_name, species)
        return (
            Classification(
                class_name=str(class_name) if is_resolved(class_name) else fallback.class_name,
                subclass=str(subclass) if is_resolved(subclass) else fallback.subclass,
            ),
            True,
        )


__all__ = ["KeywordRule", "DEFAULT_RULES", "DEFAULT_CLASSIFICATION", "FallbackClassifier"]

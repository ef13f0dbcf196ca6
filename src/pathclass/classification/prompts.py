"""Prompt construction for the pathway reasoning service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import PathwayRecord
from .vocabulary import (
    COMMON_SUBCLASSES,
    LINEAGE_GUIDANCE,
    MAJOR_CLASSES,
    SPECIES_EXAMPLES,
    Lineage,
    lineage_for,
)


@dataclass(frozen=True)
class CuratedExample:
    """Trusted record shown to the service as a worked classification."""

    pathway: str
    class_name: str
    subclass: str
    species: str = ""


@dataclass(frozen=True)
class Vocabulary:
    """Controlled terms the service chooses from."""

    classes: Tuple[str, ...] = MAJOR_CLASSES
    subclasses: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: dict(COMMON_SUBCLASSES)
    )
    guidance: Mapping[Lineage, str] = field(default_factory=lambda: dict(LINEAGE_GUIDANCE))
    species_examples: Mapping[Lineage, List[str]] = field(
        default_factory=lambda: dict(SPECIES_EXAMPLES)
    )


_OUTPUT_GRAMMAR = "Pathway: <pathway name>\nClass: <exact class name>\nSubclass: <exact subclass name>"


class PromptBuilder:
    """Render system and per-batch instructions.

    Args:
        vocabulary: Controlled vocabulary; defaults to the Reactome terms.
        max_examples: Upper bound on curated examples embedded in the system prompt.
    """

    def __init__(self, vocabulary: Optional[Vocabulary] = None, *, max_examples: int = 5) -> None:
        self._vocabulary = vocabulary or Vocabulary()
        self._max_examples = max_examples

    def select_examples(
        self, records: Iterable[PathwayRecord], trusted_source: str
    ) -> List[CuratedExample]:
        """Pick trusted records with both original fields, in input order."""
        examples: List[CuratedExample] = []
        for record in records:
            if len(examples) >= self._max_examples:
                break
            if record.source != trusted_source:
                continue
            if not record.original_class or not record.original_subclass:
                continue
            examples.append(
                CuratedExample(
                    pathway=record.pathway_name,
                    class_name=record.original_class,
                    subclass=record.original_subclass,
                    species=record.species,
                )
            )
        return examples

    def system_prompt(self, examples: Sequence[CuratedExample] = ()) -> str:
        """Return the system instruction shared by every batch of a run."""
        vocabulary = self._vocabulary
        sections = [
            "You are an expert in biological pathway classification using the Reactome "
            "hierarchy. Assign every pathway exactly one Class and one Subclass.",
            "HIERARCHY: Class (top-level) -> Subclass (intermediate) -> Pathway (specific)",
            "MAJOR CLASSES:\n" + "\n".join(f"- {name}" for name in vocabulary.classes),
        ]

        subclass_lines = [
            f"- {class_name}: " + ", ".join(f'"{item}"' for item in items)
            for class_name, items in vocabulary.subclasses.items()
        ]
        sections.append("COMMON SUBCLASSES:\n" + "\n".join(subclass_lines))

        species_lines = []
        for lineage, guidance in vocabulary.guidance.items():
            named = ", ".join(vocabulary.species_examples.get(lineage, []))
            species_lines.append(f"- {guidance}" + (f" (e.g. {named})" if named else ""))
        sections.append(
            "SPECIES ADAPTATION: different species support different pathway complexity.\n"
            + "\n".join(species_lines)
        )

        if examples:
            rendered = "\n\n".join(
                f"Pathway: {example.pathway}\nClass: {example.class_name}\n"
                f"Subclass: {example.subclass}"
                for example in examples
            )
            sections.append("CURATED EXAMPLES:\n" + rendered)

        sections.append(
            "OUTPUT FORMAT: one block per pathway, blocks separated by a blank line.\n"
            + _OUTPUT_GRAMMAR
        )
        sections.append(
            "RULES:\n"
            "- Class and Subclass are both mandatory for every pathway.\n"
            '- Never answer "Unknown", "N/A" or leave a field empty.\n'
            "- Repeat each pathway name exactly as given."
        )
        return "\n\n".join(sections)

    def user_prompt(self, names: Sequence[str], species: Sequence[str] = ()) -> str:
        """Return the instruction for one batch of pathway names.

        Args:
            names: Pathway names to classify, one ``Pathway:`` line each.
            species: Species present in the batch; adds guidance for their lineages.
        """
        lines = [
            "Classify the following pathways. Provide BOTH class and subclass for each.",
            "",
            *(f"Pathway: {name}" for name in names),
        ]

        guidance = self._lineage_guidance(species)
        if guidance:
            lines.extend(["", "Species guidance for this batch:", *guidance])
        return "\n".join(lines)

    def _lineage_guidance(self, species: Iterable[str]) -> List[str]:
        seen: Dict[Lineage, str] = {}
        for item in species:
            lineage = lineage_for(item)
            if lineage is not None and lineage not in seen:
                seen[lineage] = self._vocabulary.guidance[lineage]
        return [f"- {text}" for text in seen.values()]


__all__ = ["CuratedExample", "Vocabulary", "PromptBuilder"]

"""Tests for the deterministic keyword classifier."""

import pytest

from pathclass.classification import UNKNOWN, FallbackClassifier
from pathclass.classification.fallback import DEFAULT_CLASSIFICATION


@pytest.mark.parametrize(
    ("name", "expected_class", "expected_subclass"),
    [
        ("Glycolysis metabolism pathway", "Metabolism", "Metabolism of proteins"),
        ("Wnt signaling", "Signal Transduction", "Intracellular signaling by second messengers"),
        ("Innate immune response", "Immune System", "Innate Immune System"),
        ("Generic Transcription", "Gene expression (Transcription)", "RNA Polymerase II Transcription"),
        ("Synapse assembly", "Neuronal System", "Transmission across Chemical Synapses"),
        ("Axon development", "Developmental Biology", "Nervous system development"),
        ("Mitotic cell cycle checkpoints", "Cell Cycle", "Mitotic Cell Cycle"),
        ("Regulated necrotic death", "Programmed Cell Death", "Apoptosis"),
    ],
)
def test_rules_assign_expected_pairs(name: str, expected_class: str, expected_subclass: str) -> None:
    result = FallbackClassifier().classify(name)

    assert result.class_name == expected_class
    assert result.subclass == expected_subclass


def test_first_matching_rule_wins() -> None:
    classifier = FallbackClassifier()

    assert classifier.classify("RNA metabolism").class_name == "Metabolism"
    assert classifier.classify("Signaling in apoptosis").class_name == "Signal Transduction"


def test_unmatched_name_uses_default_pair() -> None:
    result = FallbackClassifier().classify("Methanogenesis", "Methanocaldococcus jannaschii")

    assert result == DEFAULT_CLASSIFICATION
    assert result.class_name == "Metabolism"
    assert result.subclass == "Metabolism of proteins"


def test_matching_is_case_insensitive() -> None:
    assert FallbackClassifier().classify("IMMUNE SYSTEM").class_name == "Immune System"


def test_lineage_narrows_subclass_only() -> None:
    classifier = FallbackClassifier()

    plant = classifier.classify("Seed development", "Arabidopsis thaliana")
    yeast = classifier.classify("Seed development", "Saccharomyces cerevisiae")
    human = classifier.classify("Seed development", "Homo sapiens")

    assert plant.class_name == yeast.class_name == human.class_name == "Developmental Biology"
    assert plant.subclass == "Plant development"
    assert yeast.subclass == "Cell differentiation"
    assert human.subclass == "Nervous system development"


def test_classify_is_deterministic_and_total() -> None:
    classifier = FallbackClassifier()
    names = ["Glycolysis metabolism pathway", "", "   ", "Other X", "Unknown"]

    first = [classifier.classify(name) for name in names]
    second = [classifier.classify(name) for name in names]

    assert first == second
    for result in first:
        assert result.class_name and result.class_name != UNKNOWN
        assert result.subclass and result.subclass != UNKNOWN


def test_complete_fills_only_missing_fields() -> None:
    classifier = FallbackClassifier()

    completed, used = classifier.complete("Wnt signaling", None, "Developmental Biology", UNKNOWN)

    assert used is True
    assert completed.class_name == "Developmental Biology"
    assert completed.subclass == "Intracellular signaling by second messengers"


def test_complete_keeps_resolved_pairs() -> None:
    completed, used = FallbackClassifier().complete(
        "Wnt signaling", None, "Signal Transduction", "Signaling by WNT"
    )

    assert used is False
    assert completed.subclass == "Signaling by WNT"

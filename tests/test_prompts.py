"""Tests for prompt construction."""

from pathclass.classification import PathwayRecord, PromptBuilder
from pathclass.classification.prompts import Vocabulary
from pathclass.classification.vocabulary import COMMON_SUBCLASSES, MAJOR_CLASSES


def _record(name: str, source: str, klass: str = "", subclass: str = "") -> PathwayRecord:
    return PathwayRecord.model_validate(
        {"Pathway": name, "Source": source, "Pathway Class": klass, "Subclass": subclass}
    )


def test_select_examples_takes_trusted_complete_records_in_order() -> None:
    records = [
        _record("Glycolysis", "Reactome", "Metabolism", "Carbohydrate metabolism"),
        _record("Other X", "KEGG", "Metabolism", "Photosynthesis"),
        _record("Missing subclass", "Reactome", "Metabolism"),
        *(
            _record(f"Pathway {index}", "Reactome", "Hemostasis", "Platelet activation")
            for index in range(10)
        ),
    ]

    examples = PromptBuilder(max_examples=5).select_examples(records, "Reactome")

    assert [example.pathway for example in examples] == [
        "Glycolysis",
        "Pathway 0",
        "Pathway 1",
        "Pathway 2",
        "Pathway 3",
    ]


def test_system_prompt_describes_vocabulary_grammar_and_examples() -> None:
    builder = PromptBuilder()
    examples = builder.select_examples(
        [_record("Glycolysis", "Reactome", "Metabolism", "Carbohydrate metabolism")], "Reactome"
    )

    prompt = builder.system_prompt(examples)

    assert "Signal Transduction" in prompt
    assert "Pathway: <pathway name>\nClass: <exact class name>\nSubclass:" in prompt
    assert "Pathway: Glycolysis\nClass: Metabolism\nSubclass: Carbohydrate metabolism" in prompt
    assert '"Unknown"' in prompt


def test_user_prompt_lists_names_and_lineage_guidance() -> None:
    prompt = PromptBuilder().user_prompt(
        ["Glycolysis", "Photosynthesis"], ["Arabidopsis thaliana", "Arabidopsis thaliana"]
    )

    lines = prompt.splitlines()
    assert "Pathway: Glycolysis" in lines
    assert "Pathway: Photosynthesis" in lines
    assert prompt.count("Plants:") == 1


def test_user_prompt_without_species_has_no_guidance() -> None:
    prompt = PromptBuilder().user_prompt(["Glycolysis"])

    assert "Species guidance" not in prompt


def test_default_vocabulary_instances_do_not_share_tables() -> None:
    first = Vocabulary()
    second = Vocabulary()

    assert first.classes == MAJOR_CLASSES
    assert first.subclasses == COMMON_SUBCLASSES
    assert first.subclasses is not second.subclasses
    assert "Pathway: Glycolysis" in PromptBuilder().user_prompt(["Glycolysis"])

"""Controlled Reactome vocabulary and species lineage buckets.

The class list and per-class subclasses are the terms the reasoning service is
asked to choose from. Lineages are coarse species buckets used both for prompt
guidance and for narrowing fallback subclasses.
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional, Tuple

Lineage = Literal[
    "mammal",
    "plant",
    "simple_invertebrate",
    "single_celled_eukaryote",
    "prokaryote_or_archaea",
]

MAJOR_CLASSES: Tuple[str, ...] = (
    "Metabolism",
    "Signal Transduction",
    "Gene expression (Transcription)",
    "Immune System",
    "Cell Cycle",
    "Developmental Biology",
    "Neuronal System",
    "DNA Replication",
    "DNA Repair",
    "Cell-Cell communication",
    "Transport of small molecules",
    "Vesicle-mediated transport",
    "Programmed Cell Death",
    "Autophagy",
    "Chromatin organization",
    "Protein localization",
    "Cellular responses to stimuli",
    "Hemostasis",
    "Muscle contraction",
    "Organelle biogenesis and maintenance",
    "Sensory Perception",
    "Drug ADME",
    "Digestion and absorption",
    "Extracellular matrix organization",
)

COMMON_SUBCLASSES: Dict[str, Tuple[str, ...]] = {
    "Metabolism": (
        "Metabolism of proteins",
        "Metabolism of RNA",
        "Metabolism of amino acids and derivatives",
        "Carbohydrate metabolism",
        "Photosynthesis",
    ),
    "Signal Transduction": (
        "Signaling by Receptor Tyrosine Kinases",
        "MAPK family signaling cascades",
        "Signaling by Rho GTPases",
        "Intracellular signaling by second messengers",
    ),
    "Immune System": (
        "Adaptive Immune System",
        "Cytokine Signaling in Immune system",
        "Innate Immune System",
    ),
    "Gene expression (Transcription)": (
        "RNA Polymerase II Transcription",
        "Processing of Capped Intron-Containing Pre-mRNA",
        "mRNA Splicing",
    ),
    "Neuronal System": (
        "Transmission across Chemical Synapses",
        "Neurotransmitter receptors and postsynaptic signal transmission",
    ),
    "Cell-Cell communication": (
        "Cell junction organization",
        "Adherens junctions interactions",
        "Gap junction trafficking",
    ),
    "Programmed Cell Death": ("Apoptosis", "Necroptosis", "Autophagy"),
    "Drug ADME": (
        "Xenobiotic metabolism",
        "Drug metabolism",
        "Phase I - Functionalization of compounds",
    ),
    "Developmental Biology": (
        "Nervous system development",
        "Axon guidance",
        "Plant development",
        "Cell differentiation",
    ),
    "Extracellular matrix organization": (
        "Collagen formation",
        "Collagen biosynthesis and modifying enzymes",
        "Assembly of collagen fibrils and other multimeric structures",
    ),
}

# Ordered: the first lineage whose marker appears in the species text wins.
LINEAGE_MARKERS: Tuple[Tuple[Lineage, Tuple[str, ...]], ...] = (
    ("mammal", ("homo sapiens", "human", "mus musculus", "mouse", "rattus", "bos taurus")),
    ("plant", ("arabidopsis", "oryza", "zea mays", "plant")),
    (
        "simple_invertebrate",
        ("caenorhabditis", "drosophila", "trichoplax", "nematode", "fruit fly"),
    ),
    (
        "single_celled_eukaryote",
        ("dictyostelium", "monosiga", "saccharomyces", "plasmodium", "yeast"),
    ),
    (
        "prokaryote_or_archaea",
        (
            "escherichia",
            "e. coli",
            "pseudomonas",
            "klebsiella",
            "mycobacterium",
            "bacillus",
            "staphylococcus",
            "synechocystis",
            "methanocaldococcus",
            "bacteria",
            "archaea",
        ),
    ),
)

LINEAGE_GUIDANCE: Dict[Lineage, str] = {
    "mammal": (
        "Mammals: full pathway complexity including adaptive immunity, complex signaling, "
        "neuronal systems and extracellular matrix. Use standard Reactome classifications."
    ),
    "plant": (
        "Plants: plant-specific pathways such as photosynthesis, plant hormones, seed "
        "development and stress responses. No immune, neuronal or extracellular matrix "
        "pathways; classify animal-like pathways as basic metabolism or plant processes."
    ),
    "simple_invertebrate": (
        "Simple animals: simple nervous system, developmental biology and basic innate "
        "immunity. No adaptive immunity; simplify complex vertebrate pathways."
    ),
    "single_celled_eukaryote": (
        "Single-celled eukaryotes and parasites: metabolism, cell cycle and basic cell "
        "processes. No immune or neuronal systems; classify multicellular pathways as "
        "basic metabolism."
    ),
    "prokaryote_or_archaea": (
        "Bacteria and archaea: basic metabolism, cell cycle and DNA processes only "
        "(photosynthesis for cyanobacteria, methanogenesis for archaea). No signaling, "
        "immune, neuronal or developmental pathways."
    ),
}

SPECIES_EXAMPLES: Dict[Lineage, List[str]] = {
    "mammal": ["Homo sapiens", "Mus musculus"],
    "plant": ["Arabidopsis thaliana"],
    "simple_invertebrate": [
        "Caenorhabditis elegans",
        "Drosophila melanogaster",
        "Trichoplax adhaerens",
    ],
    "single_celled_eukaryote": [
        "Dictyostelium discoideum",
        "Monosiga brevicollis",
        "Saccharomyces cerevisiae",
        "Plasmodium falciparum",
    ],
    "prokaryote_or_archaea": [
        "Escherichia coli",
        "Mycobacterium tuberculosis",
        "Synechocystis sp.",
        "Methanocaldococcus jannaschii",
    ],
}


def lineage_for(species: Optional[str]) -> Optional[Lineage]:
    """Return the lineage bucket for a species name, or None when unrecognised."""
    if not species:
        return None
    lowered = species.lower()
    for lineage, markers in LINEAGE_MARKERS:
        if any(marker in lowered for marker in markers):
            return lineage
    return None


__all__ = [
    "Lineage",
    "MAJOR_CLASSES",
    "COMMON_SUBCLASSES",
    "LINEAGE_MARKERS",
    "LINEAGE_GUIDANCE",
    "SPECIES_EXAMPLES",
    "lineage_for",
]

"""Typed, immutable records decoded from UniProtKB XML entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Tuple


@dataclass(frozen=True)
class Evidence:
    type: str = ""
    key: str = ""


@dataclass(frozen=True)
class EvidencedText:
    value: str = ""
    evidence: Tuple[Evidence, ...] = ()


@dataclass(frozen=True)
class Name:
    """A typed name, e.g. ``<name type="primary">BRCA1</name>``."""

    value: str = ""
    type: str = ""
    evidence: Tuple[Evidence, ...] = ()


@dataclass(frozen=True)
class ProteinName:
    """One name block of ``<protein>``.

    ``kind`` is ``recommended``, ``alternative`` or ``submitted``.
    """

    kind: str
    full_name: EvidencedText = field(default_factory=EvidencedText)
    short_names: Tuple[EvidencedText, ...] = ()
    ec_numbers: Tuple[EvidencedText, ...] = ()


@dataclass(frozen=True)
class Protein:
    names: Tuple[ProteinName, ...] = ()

    @property
    def recommended_name(self) -> Optional[ProteinName]:
        for name in self.names:
            if name.kind == "recommended":
                return name
        return None

    @property
    def alternative_names(self) -> Tuple[ProteinName, ...]:
        return tuple(name for name in self.names if name.kind == "alternative")

    @property
    def submitted_names(self) -> Tuple[ProteinName, ...]:
        return tuple(name for name in self.names if name.kind == "submitted")


@dataclass(frozen=True)
class Property:
    type: str = ""
    value: str = ""


@dataclass(frozen=True)
class DbReference:
    type: str = ""
    id: str = ""
    evidence: Tuple[Evidence, ...] = ()
    properties: Tuple[Property, ...] = ()

    def get(self, property_type: str, default: str = "") -> str:
        for prop in self.properties:
            if prop.type == property_type:
                return prop.value
        return default


@dataclass(frozen=True)
class Gene:
    names: Tuple[Name, ...] = ()


@dataclass(frozen=True)
class Organism:
    """Source organism; also used for ``<organismHost>``."""

    names: Tuple[Name, ...] = ()
    db_references: Tuple[DbReference, ...] = ()
    lineage: Tuple[EvidencedText, ...] = ()
    classification: Tuple[str, ...] = ()

    @property
    def taxon_id(self) -> str:
        for ref in self.db_references:
            if ref.type == "NCBI Taxonomy":
                return ref.id
        return ""

    @property
    def scientific_name(self) -> str:
        for name in self.names:
            if name.type == "scientific":
                return name.value
        return ""


@dataclass(frozen=True)
class GeneLocation:
    type: str = ""
    names: Tuple[Name, ...] = ()
    evidence: Tuple[Evidence, ...] = ()
    gene: str = ""
    chromosome: str = ""
    map_position: str = ""


@dataclass(frozen=True)
class Citation:
    type: str = ""
    date: str = ""
    name: str = ""
    volume: str = ""
    first: str = ""
    last: str = ""
    title: str = ""
    authors: Tuple[str, ...] = ()
    db_references: Tuple[DbReference, ...] = ()


@dataclass(frozen=True)
class Source:
    strains: Tuple[str, ...] = ()
    tissues: Tuple[str, ...] = ()
    plasmids: Tuple[str, ...] = ()
    organism: Organism = field(default_factory=Organism)
    db_references: Tuple[DbReference, ...] = ()


@dataclass(frozen=True)
class Reference:
    key: str = ""
    citation: Citation = field(default_factory=Citation)
    scopes: Tuple[str, ...] = ()
    source: Source = field(default_factory=Source)
    evidence: Tuple[Evidence, ...] = ()
    protein_names: Tuple[Name, ...] = ()
    gene_names: Tuple[Name, ...] = ()
    organism_names: Tuple[Name, ...] = ()
    db_references: Tuple[DbReference, ...] = ()


@dataclass(frozen=True)
class Position:
    """A sequence coordinate; ``value`` is 0 when absent or unknown."""

    value: int = 0
    status: str = ""


@dataclass(frozen=True)
class Location:
    """Either a ``begin``/``end`` range or a single ``position``.

    Whichever form is absent keeps its zero value.
    """

    begin: Position = field(default_factory=Position)
    end: Position = field(default_factory=Position)
    position: Position = field(default_factory=Position)
    sequence: str = ""

    @property
    def is_range(self) -> bool:
        return bool(self.begin.value or self.end.value or self.begin.status or self.end.status)


@dataclass(frozen=True)
class Reaction:
    texts: Tuple[EvidencedText, ...] = ()
    names: Tuple[str, ...] = ()
    db_references: Tuple[DbReference, ...] = ()
    ec_numbers: Tuple[str, ...] = ()
    evidence: Tuple[Evidence, ...] = ()


@dataclass(frozen=True)
class Enzyme:
    ec_numbers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Kinetic:
    value: str = ""
    unit: str = ""


@dataclass(frozen=True)
class KineticParameters:
    km: Tuple[Kinetic, ...] = ()
    vmax: Tuple[Kinetic, ...] = ()


@dataclass(frozen=True)
class Comment:
    type: str = ""
    molecule: str = ""
    evidence: Tuple[Evidence, ...] = ()
    texts: Tuple[EvidencedText, ...] = ()
    location: Location = field(default_factory=Location)
    reaction: Optional[Reaction] = None
    enzyme: Optional[Enzyme] = None
    ph: Tuple[EvidencedText, ...] = ()
    temperature: Tuple[EvidencedText, ...] = ()
    kinetic_parameters: Optional[KineticParameters] = None


@dataclass(frozen=True)
class Feature:
    type: str = ""
    id: str = ""
    description: str = ""
    ref: str = ""
    evidence: Tuple[Evidence, ...] = ()
    location: Location = field(default_factory=Location)
    original: str = ""
    variations: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Keyword:
    value: str = ""
    id: str = ""
    evidence: Tuple[Evidence, ...] = ()


@dataclass(frozen=True)
class ProteinExistence:
    type: str = ""


@dataclass(frozen=True)
class Sequence:
    """Residue string and its metadata.

    ``length`` is copied from the attribute and is not checked against
    ``len(value)``.
    """

    value: str = ""
    length: int = 0
    mass: int = 0
    checksum: str = ""
    version: int = 0
    modified: Optional[date] = None
    fragment: str = ""


@dataclass(frozen=True)
class Entry:
    dataset: str = ""
    created: Optional[date] = None
    modified: Optional[date] = None
    version: int = 0
    accessions: Tuple[str, ...] = ()
    names: Tuple[str, ...] = ()
    protein: Protein = field(default_factory=Protein)
    genes: Tuple[Gene, ...] = ()
    organism: Organism = field(default_factory=Organism)
    organism_hosts: Tuple[Organism, ...] = ()
    gene_locations: Tuple[GeneLocation, ...] = ()
    references: Tuple[Reference, ...] = ()
    comments: Tuple[Comment, ...] = ()
    db_references: Tuple[DbReference, ...] = ()
    protein_existence: ProteinExistence = field(default_factory=ProteinExistence)
    keywords: Tuple[Keyword, ...] = ()
    features: Tuple[Feature, ...] = ()
    evidence: Tuple[Evidence, ...] = ()
    sequence: Sequence = field(default_factory=Sequence)

    @property
    def primary_accession(self) -> str:
        return self.accessions[0] if self.accessions else ""

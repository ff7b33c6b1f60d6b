"""Map one complete ``<entry>`` element onto the typed ``Entry`` record.

Decoding is lossy-tolerant: unknown attributes and child elements are ignored.
Values that cannot be converted (non-numeric lengths, bad dates, a missing
accession) are collected as problems; the best-effort record is still built and
returned together with a ``RecordShapeError``.
"""

from __future__ import annotations

from datetime import date
import xml.etree.ElementTree as ET
from typing import Dict, Iterator, List, Optional, Tuple

from uniprot_extract.errors import RecordShapeError
from uniprot_extract.models import (
    Citation,
    Comment,
    DbReference,
    Entry,
    Enzyme,
    Evidence,
    EvidencedText,
    Feature,
    Gene,
    GeneLocation,
    Keyword,
    Kinetic,
    KineticParameters,
    Location,
    Name,
    Organism,
    Position,
    Property,
    Protein,
    ProteinExistence,
    ProteinName,
    Reaction,
    Reference,
    Sequence,
    Source,
)

PROTEIN_NAME_KINDS = {
    "recommendedName": "recommended",
    "alternativeName": "alternative",
    "submittedName": "submitted",
}
KM_TAGS = {"km", "KM"}
VMAX_TAGS = {"vmax", "Vmax"}


def local_tag(tag) -> str:
    """Return the tag name without its ``{namespace}`` prefix."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _children(elem: ET.Element, *tags: str) -> Iterator[ET.Element]:
    for child in elem:
        if local_tag(child.tag) in tags:
            yield child


def _first(elem: ET.Element, tag: str) -> Optional[ET.Element]:
    return next(_children(elem, tag), None)


def _text(elem: Optional[ET.Element]) -> str:
    if elem is None or elem.text is None:
        return ""
    return elem.text.strip()


def _texts(elem: ET.Element, tag: str) -> Tuple[str, ...]:
    return tuple(_text(child) for child in _children(elem, tag))


class _EntryDecoder:
    def __init__(self) -> None:
        self.problems: List[str] = []
        self.evidence_types: Dict[str, str] = {}

    def _int(self, raw: Optional[str], what: str) -> int:
        if raw is None:
            return 0
        raw = raw.strip()
        if not raw:
            return 0
        try:
            return int(raw)
        except ValueError:
            self.problems.append(f"{what}: {raw!r} is not an integer")
            return 0

    def _date(self, raw: Optional[str], what: str) -> Optional[date]:
        if not raw:
            return None
        try:
            return date.fromisoformat(raw.strip())
        except ValueError:
            self.problems.append(f"{what}: {raw!r} is not an ISO date")
            return None

    def evidence(self, elem: ET.Element) -> Tuple[Evidence, ...]:
        found = [
            Evidence(type=child.get("type", ""), key=child.get("key", ""))
            for child in _children(elem, "evidence")
        ]
        for key in elem.get("evidence", "").split():
            found.append(Evidence(type=self.evidence_types.get(key, ""), key=key))
        return tuple(found)

    def evidenced_text(self, elem: ET.Element) -> EvidencedText:
        return EvidencedText(value=_text(elem), evidence=self.evidence(elem))

    def name(self, elem: ET.Element) -> Name:
        return Name(value=_text(elem), type=elem.get("type", ""), evidence=self.evidence(elem))

    def db_reference(self, elem: ET.Element) -> DbReference:
        return DbReference(
            type=elem.get("type", ""),
            id=elem.get("id", ""),
            evidence=self.evidence(elem),
            properties=tuple(
                Property(type=prop.get("type", ""), value=prop.get("value", ""))
                for prop in _children(elem, "property")
            ),
        )

    def db_references(self, elem: ET.Element) -> Tuple[DbReference, ...]:
        return tuple(self.db_reference(child) for child in _children(elem, "dbReference"))

    def protein(self, elem: ET.Element) -> Protein:
        names = []
        for child in elem:
            kind = PROTEIN_NAME_KINDS.get(local_tag(child.tag))
            if kind is None:
                continue
            full_name = _first(child, "fullName")
            names.append(
                ProteinName(
                    kind=kind,
                    full_name=self.evidenced_text(full_name) if full_name is not None else EvidencedText(),
                    short_names=tuple(self.evidenced_text(c) for c in _children(child, "shortName")),
                    ec_numbers=tuple(self.evidenced_text(c) for c in _children(child, "ecNumber")),
                )
            )
        return Protein(names=tuple(names))

    def organism(self, elem: ET.Element) -> Organism:
        lineage = _first(elem, "lineage")
        return Organism(
            names=tuple(self.name(child) for child in _children(elem, "name")),
            db_references=self.db_references(elem),
            lineage=tuple(self.evidenced_text(taxon) for taxon in _children(lineage, "taxon"))
            if lineage is not None
            else (),
            classification=_texts(elem, "classification"),
        )

    def citation(self, elem: ET.Element) -> Citation:
        authors: List[str] = []
        for author_list in _children(elem, "authorList"):
            authors.extend(
                child.get("name", "") or _text(child)
                for child in _children(author_list, "person", "consortium")
            )
        journal = elem.get("name", "") or _text(_first(elem, "journal"))
        return Citation(
            type=elem.get("type", ""),
            date=elem.get("date", "") or _text(_first(elem, "date")),
            name=journal,
            volume=elem.get("volume", ""),
            first=elem.get("first", ""),
            last=elem.get("last", ""),
            title=_text(_first(elem, "title")),
            authors=tuple(authors),
            db_references=self.db_references(elem),
        )

    def section_names(self, elem: ET.Element, tag: str) -> Tuple[Name, ...]:
        section = _first(elem, tag)
        if section is None:
            return ()
        return tuple(self.name(child) for child in _children(section, "name"))

    def source(self, elem: Optional[ET.Element]) -> Source:
        if elem is None:
            return Source()
        organism = _first(elem, "organism")
        return Source(
            strains=_texts(elem, "strain"),
            tissues=_texts(elem, "tissue"),
            plasmids=_texts(elem, "plasmid"),
            organism=self.organism(organism) if organism is not None else Organism(),
            db_references=self.db_references(elem),
        )

    def reference(self, elem: ET.Element) -> Reference:
        citation = _first(elem, "citation")
        return Reference(
            key=elem.get("key", ""),
            citation=self.citation(citation) if citation is not None else Citation(),
            scopes=_texts(elem, "scope"),
            source=self.source(_first(elem, "source")),
            evidence=self.evidence(elem),
            protein_names=self.section_names(elem, "protein"),
            gene_names=self.section_names(elem, "gene"),
            organism_names=self.section_names(elem, "organism"),
            db_references=self.db_references(elem),
        )

    def gene_location(self, elem: ET.Element) -> GeneLocation:
        return GeneLocation(
            type=elem.get("type", ""),
            names=tuple(self.name(child) for child in _children(elem, "name")),
            evidence=self.evidence(elem),
            gene=elem.get("gene", ""),
            chromosome=_text(_first(elem, "chromosome")),
            map_position=_text(_first(elem, "mapPosition")),
        )

    def position(self, elem: Optional[ET.Element], what: str) -> Position:
        if elem is None:
            return Position()
        raw = elem.get("position")
        if raw is None:
            raw = elem.text
        return Position(value=self._int(raw, what), status=elem.get("status", ""))

    def location(self, elem: Optional[ET.Element]) -> Location:
        if elem is None:
            return Location()
        return Location(
            begin=self.position(_first(elem, "begin"), "location begin"),
            end=self.position(_first(elem, "end"), "location end"),
            position=self.position(_first(elem, "position"), "location position"),
            sequence=elem.get("sequence", ""),
        )

    def feature(self, elem: ET.Element) -> Feature:
        variations = _texts(elem, "variation")
        original = _text(_first(elem, "original"))
        for variation in _children(elem, "variation"):
            # Older dumps nest <original> inside <variation>.
            original = original or _text(_first(variation, "original"))
        return Feature(
            type=elem.get("type", ""),
            id=elem.get("id", ""),
            description=elem.get("description", ""),
            ref=elem.get("ref", ""),
            evidence=self.evidence(elem),
            location=self.location(_first(elem, "location")),
            original=original,
            variations=variations,
        )

    def reaction(self, elem: ET.Element) -> Reaction:
        db_references = self.db_references(elem)
        ec_numbers = _texts(elem, "ec") + tuple(ref.id for ref in db_references if ref.type == "EC")
        return Reaction(
            texts=tuple(self.evidenced_text(c) for c in _children(elem, "text")),
            names=_texts(elem, "name"),
            db_references=db_references,
            ec_numbers=ec_numbers,
            evidence=self.evidence(elem),
        )

    def kinetic_parameters(self, elem: ET.Element) -> KineticParameters:
        return KineticParameters(
            km=tuple(Kinetic(value=_text(c), unit=c.get("unit", "")) for c in _children(elem, *KM_TAGS)),
            vmax=tuple(Kinetic(value=_text(c), unit=c.get("unit", "")) for c in _children(elem, *VMAX_TAGS)),
        )

    def _dependence(self, elem: ET.Element, short_tag: str, long_tag: str) -> Tuple[EvidencedText, ...]:
        values: List[EvidencedText] = []
        for child in _children(elem, short_tag, long_tag):
            if local_tag(child.tag) == short_tag:
                values.append(self.evidenced_text(child))
            else:
                values.extend(self.evidenced_text(t) for t in _children(child, "text"))
        return tuple(values)

    def comment(self, elem: ET.Element) -> Comment:
        reaction = _first(elem, "reaction")
        enzyme = _first(elem, "enzyme")
        kinetics = next(_children(elem, "kineticParameters", "kinetics"), None)
        return Comment(
            type=elem.get("type", ""),
            molecule=elem.get("molecule", "") or _text(_first(elem, "molecule")),
            evidence=self.evidence(elem),
            texts=tuple(self.evidenced_text(c) for c in _children(elem, "text")),
            location=self.location(_first(elem, "location")),
            reaction=self.reaction(reaction) if reaction is not None else None,
            enzyme=Enzyme(ec_numbers=_texts(enzyme, "ec")) if enzyme is not None else None,
            ph=self._dependence(elem, "ph", "phDependence"),
            temperature=self._dependence(elem, "temperature", "temperatureDependence"),
            kinetic_parameters=self.kinetic_parameters(kinetics) if kinetics is not None else None,
        )

    def sequence(self, elem: Optional[ET.Element]) -> Sequence:
        if elem is None:
            return Sequence()
        return Sequence(
            value="".join((elem.text or "").split()),
            length=self._int(elem.get("length"), "sequence length"),
            mass=self._int(elem.get("mass"), "sequence mass"),
            checksum=elem.get("checksum", ""),
            version=self._int(elem.get("version"), "sequence version"),
            modified=self._date(elem.get("modified"), "sequence modified"),
            fragment=elem.get("fragment", ""),
        )

    def entry(self, elem: ET.Element) -> Entry:
        # Evidence keys are declared at the end of the entry; read them first
        # so attribute references can be resolved to their ECO codes.
        evidence = tuple(
            Evidence(type=child.get("type", ""), key=child.get("key", ""))
            for child in _children(elem, "evidence")
        )
        self.evidence_types = {item.key: item.type for item in evidence if item.key}

        accessions = _texts(elem, "accession")
        if not accessions:
            self.problems.append("entry has no accession")
        elif not accessions[0]:
            self.problems.append("first accession is blank")

        protein = _first(elem, "protein")
        organism = _first(elem, "organism")
        existence = _first(elem, "proteinExistence")
        return Entry(
            dataset=elem.get("dataset", ""),
            created=self._date(elem.get("created"), "entry created"),
            modified=self._date(elem.get("modified"), "entry modified"),
            version=self._int(elem.get("version"), "entry version"),
            accessions=accessions,
            names=_texts(elem, "name"),
            protein=self.protein(protein) if protein is not None else Protein(),
            genes=tuple(
                Gene(names=tuple(self.name(n) for n in _children(gene, "name")))
                for gene in _children(elem, "gene")
            ),
            organism=self.organism(organism) if organism is not None else Organism(),
            organism_hosts=tuple(self.organism(c) for c in _children(elem, "organismHost")),
            gene_locations=tuple(self.gene_location(c) for c in _children(elem, "geneLocation")),
            references=tuple(self.reference(c) for c in _children(elem, "reference")),
            comments=tuple(self.comment(c) for c in _children(elem, "comment")),
            db_references=self.db_references(elem),
            protein_existence=ProteinExistence(type=existence.get("type", ""))
            if existence is not None
            else ProteinExistence(),
            keywords=tuple(
                Keyword(value=_text(c), id=c.get("id", ""), evidence=self.evidence(c))
                for c in _children(elem, "keyword")
            ),
            features=tuple(self.feature(c) for c in _children(elem, "feature")),
            evidence=evidence,
            sequence=self.sequence(_first(elem, "sequence")),
        )


def decode_entry(elem: ET.Element) -> Tuple[Entry, Optional[RecordShapeError]]:
    """Decode a complete ``<entry>`` subtree.

    Returns the record and ``None``, or the best-effort partial record and the
    ``RecordShapeError`` describing every field that could not be decoded.
    """
    decoder = _EntryDecoder()
    entry = decoder.entry(elem)
    if decoder.problems:
        return entry, RecordShapeError(entry.primary_accession or None, decoder.problems)
    return entry, None

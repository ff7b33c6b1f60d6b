import bz2
import gzip

import pytest

UNIPROT_HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<uniprot xmlns="http://uniprot.org/uniprot" '
    'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">\n'
)
UNIPROT_FOOTER = '<copyright>Copyrighted by the UniProt Consortium</copyright>\n</uniprot>\n'


def make_entry(accessions, features="", extra="", sequence="MKTAYIAK", attrs=None):
    """Build a minimal ``<entry>`` element as text."""
    attrs = attrs or {
        "dataset": "Swiss-Prot",
        "created": "1986-07-21",
        "modified": "2024-01-24",
        "version": "12",
    }
    attr_text = " ".join(f'{key}="{value}"' for key, value in attrs.items())
    accession_text = "".join(f"<accession>{acc}</accession>" for acc in accessions)
    return (
        f"<entry {attr_text}>"
        f"{accession_text}"
        f"<name>TEST_HUMAN</name>"
        f"{extra}"
        f"{features}"
        f'<sequence length="{len(sequence)}" mass="1000" checksum="ABC" '
        f'modified="1990-01-01" version="1">{sequence}</sequence>'
        f"</entry>\n"
    )


def make_document(*entries, header=UNIPROT_HEADER, footer=UNIPROT_FOOTER):
    return header + "".join(entries) + footer


@pytest.fixture
def write_archive(tmp_path):
    """Write XML text to a compressed archive and return its path."""

    def _write(xml_text, name="uniprot.xml.gz"):
        path = tmp_path / name
        data = xml_text.encode("utf-8") if isinstance(xml_text, str) else xml_text
        if name.endswith(".bz2"):
            path.write_bytes(bz2.compress(data))
        elif name.endswith(".gz"):
            path.write_bytes(gzip.compress(data))
        else:
            path.write_bytes(data)
        return str(path)

    return _write


@pytest.fixture
def two_entry_archive(write_archive):
    first = make_entry(
        ["P12345"],
        features=(
            '<feature type="chain" id="PRO_1" description="Test chain">'
            '<location><begin position="10"/><end position="20"/></location>'
            "</feature>"
        ),
    )
    second = make_entry(["Q99999", "Q88888"])
    return write_archive(make_document(first, second))

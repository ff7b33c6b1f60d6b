"""Tests for flattening entries and writing JSONL/Parquet output."""

import json
import xml.etree.ElementTree as ET

from datasets import Dataset
import pytest

from uniprot_extract.decode import decode_entry
from uniprot_extract.io import FEATURES, entry_to_row, iter_jsonl, write_jsonl, write_parquet

ENTRY_XML = (
    "<entry dataset='Swiss-Prot' created='2000-05-30' modified='2023-11-08' version='7'>"
    "<accession>P00001</accession><accession>P00002</accession>"
    "<name>TEST_YEAST</name>"
    "<protein><submittedName><fullName>Uncharacterized protein</fullName></submittedName></protein>"
    "<gene><name type='primary'>YAL001C</name></gene>"
    "<organism><name type='scientific'>Saccharomyces cerevisiae</name>"
    "<dbReference type='NCBI Taxonomy' id='559292'/>"
    "<lineage><taxon>Eukaryota</taxon><taxon>Fungi</taxon></lineage></organism>"
    "<comment type='function'><text>Binds DNA.</text></comment>"
    "<keyword id='KW-0238'>DNA-binding</keyword>"
    "<feature type='chain'><location><begin position='1'/><end position='4'/></location></feature>"
    "<sequence length='4' mass='512' checksum='0123'>MKVL</sequence>"
    "</entry>"
)


@pytest.fixture
def entry():
    decoded, error = decode_entry(ET.fromstring(ENTRY_XML))
    assert error is None
    return decoded


def test_entry_to_row(entry):
    row = entry_to_row(entry)

    assert row["accession"] == "P00001"
    assert row["accessions"] == ["P00001", "P00002"]
    assert row["entry_name"] == "TEST_YEAST"
    assert row["created"] == "2000-05-30"
    assert row["protein_name"] == "Uncharacterized protein"
    assert row["gene_names"] == ["YAL001C"]
    assert row["organism"] == "Saccharomyces cerevisiae"
    assert row["taxon_id"] == "559292"
    assert row["lineage"] == ["Eukaryota", "Fungi"]
    assert row["keywords"] == ["DNA-binding"]
    assert row["functions"] == ["Binds DNA."]
    assert row["feature_count"] == 1
    assert row["sequence"] == "MKVL"
    assert row["length"] == 4
    assert set(row) == set(FEATURES)
    json.dumps(row)


def test_jsonl_round_trip(tmp_path, entry):
    out_path = str(tmp_path / "out" / "entries.jsonl")

    count = write_jsonl([entry_to_row(entry), entry_to_row(entry)], out_path)

    rows = list(iter_jsonl(out_path))
    assert count == 2
    assert [row["accession"] for row in rows] == ["P00001", "P00001"]


def test_iter_jsonl_reports_bad_line(tmp_path):
    path = tmp_path / "bad.jsonl"
    path.write_text('{"accession": "P1"}\n\n{not json\n', encoding="utf-8")

    rows = iter_jsonl(str(path))

    assert next(rows) == {"accession": "P1"}
    with pytest.raises(ValueError, match="line 3"):
        next(rows)


def test_write_parquet_shards_and_merges(tmp_path, entry):
    out_path = str(tmp_path / "entries.parquet")
    rows = [entry_to_row(entry) for _ in range(5)]

    shards = write_parquet(rows, out_path, batch_size=2)

    assert len(shards) == 3
    dataset = Dataset.from_parquet(out_path)
    assert len(dataset) == 5
    assert dataset[0]["accession"] == "P00001"
    assert dataset[0]["lineage"] == ["Eukaryota", "Fungi"]


def test_write_jsonl_leaves_no_partial_file(tmp_path, entry):
    out_path = tmp_path / "entries.jsonl"
    out_path.write_text('{"accession": "OLD"}\n', encoding="utf-8")

    def rows():
        yield entry_to_row(entry)
        raise RuntimeError("stream broke")

    with pytest.raises(RuntimeError, match="stream broke"):
        write_jsonl(rows(), str(out_path))

    assert out_path.read_text(encoding="utf-8") == '{"accession": "OLD"}\n'
    assert list(tmp_path.iterdir()) == [out_path]

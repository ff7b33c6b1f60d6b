"""Tests for the extraction command line."""

import json

import pytest

from conftest import make_document, make_entry
from uniprot_extract import cli
from uniprot_extract.extract import ErrorPolicy, iter_entries

HUMAN = (
    "<organism><name type='scientific'>Homo sapiens</name>"
    "<dbReference type='NCBI Taxonomy' id='9606'/></organism>"
)
MOUSE = (
    "<organism><name type='scientific'>Mus musculus</name>"
    "<dbReference type='NCBI Taxonomy' id='10090'/></organism>"
)


@pytest.fixture
def mixed_archive(write_archive):
    return write_archive(
        make_document(
            make_entry(["P1"], extra=HUMAN + "<keyword id='KW-1'>Kinase</keyword>"),
            make_entry(["P2"], extra=MOUSE),
            make_entry(["P3"], extra=HUMAN, sequence="MK"),
        )
    )


class TestBuildFilteredRows:
    def _rows(self, path, **overrides):
        options = dict(
            max_entries=None,
            taxon_id=None,
            reviewed_only=False,
            min_length=0,
            max_length=None,
            keyword=None,
        )
        options.update(overrides)
        rows_iter, counts = cli.build_filtered_rows(iter_entries(path), **options)
        return list(rows_iter), counts()

    def test_all_rows(self, mixed_archive):
        rows, (seen, written, failed, filtered) = self._rows(mixed_archive)

        assert [row["accession"] for row in rows] == ["P1", "P2", "P3"]
        assert (seen, written, failed, filtered) == (3, 3, 0, 0)

    def test_taxon_filter(self, mixed_archive):
        rows, (_, written, _, filtered) = self._rows(mixed_archive, taxon_id="9606")

        assert [row["accession"] for row in rows] == ["P1", "P3"]
        assert (written, filtered) == (2, 1)

    def test_length_and_keyword_filters(self, mixed_archive):
        rows, _ = self._rows(mixed_archive, min_length=5)
        assert [row["accession"] for row in rows] == ["P1", "P2"]

        rows, _ = self._rows(mixed_archive, keyword="kinase")
        assert [row["accession"] for row in rows] == ["P1"]

    def test_max_entries_stops_early(self, mixed_archive):
        stream = iter_entries(mixed_archive)
        rows_iter, counts = cli.build_filtered_rows(stream, 1, None, False, 0, None, None)

        assert [row["accession"] for row in rows_iter] == ["P1"]
        assert counts()[0] == 1
        assert stream.closed

    def test_decode_error_is_fatal_by_default(self, write_archive):
        bad = make_entry(["P2"], attrs={"version": "x"})
        path = write_archive(make_document(make_entry(["P1"]), bad))

        with pytest.raises(cli.FatalEntryError):
            self._rows(path)

    def test_decode_error_counted_when_continuing(self, write_archive):
        bad = make_entry(["P2"], attrs={"version": "x"})
        path = write_archive(make_document(make_entry(["P1"]), bad, make_entry(["P3"])))
        rows_iter, counts = cli.build_filtered_rows(
            iter_entries(path, on_error=ErrorPolicy.CONTINUE), None, None, False, 0, None, None
        )

        assert [row["accession"] for row in rows_iter] == ["P1", "P3"]
        assert counts() == (3, 2, 1, 0)


class TestMain:
    def test_list_prints_accessions(self, mixed_archive, capsys):
        cli.main(["--input", mixed_archive, "--list", "--max-entries", "2"])

        out = capsys.readouterr().out
        assert "Found entry with accession(s): P1" in out
        assert "P2" in out
        assert "P3" not in out
        assert "Finished processing entries." in out

    def test_writes_jsonl_and_parquet(self, mixed_archive, tmp_path, capsys):
        jsonl_path = tmp_path / "out.jsonl"
        parquet_path = tmp_path / "out.parquet"

        cli.main(
            [
                "--input",
                mixed_archive,
                "--taxon-id",
                "9606",
                "--jsonl",
                str(jsonl_path),
                "--parquet",
                str(parquet_path),
            ]
        )

        lines = jsonl_path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["accession"] for line in lines] == ["P1", "P3"]
        assert parquet_path.exists()
        out = capsys.readouterr().out
        assert "Entries written: 2" in out
        assert "Entries filtered out: 1" in out

    def test_missing_input_exits(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["--input", str(tmp_path / "nope.xml.gz"), "--list"])

        assert excinfo.value.code == 1
        assert "Cannot open archive" in capsys.readouterr().err

    def test_malformed_archive_exits(self, write_archive, capsys):
        path = write_archive(make_document(make_entry(["P1"])) + "<trailing/>")

        with pytest.raises(SystemExit) as excinfo:
            cli.main(["--input", path, "--list"])

        assert excinfo.value.code == 1
        assert "Reading a UniProt entry failed" in capsys.readouterr().err

    def test_failed_run_leaves_no_jsonl(self, write_archive, tmp_path, capsys):
        bad = make_entry(["P2"], attrs={"version": "x"})
        path = write_archive(make_document(make_entry(["P1"]), bad))
        jsonl_path = tmp_path / "out" / "entries.jsonl"

        with pytest.raises(SystemExit) as excinfo:
            cli.main(["--input", path, "--jsonl", str(jsonl_path), "--parquet", str(tmp_path / "out.parquet")])

        assert excinfo.value.code == 1
        assert "Reading a UniProt entry failed" in capsys.readouterr().err
        assert list(jsonl_path.parent.iterdir()) == []

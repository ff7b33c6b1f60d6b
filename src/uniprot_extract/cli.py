"""Command-line interface for UniProtKB XML dump extraction."""

from __future__ import annotations

import argparse
from itertools import islice
import json
import logging
import os
import sys
from typing import Iterator, Optional

from datasets import Dataset
from tqdm import tqdm

from uniprot_extract.download import download_dump
from uniprot_extract.errors import UniProtExtractError
from uniprot_extract.extract import EntryStream, ErrorPolicy, iter_entries
from uniprot_extract.io import entry_to_row, iter_jsonl, write_jsonl, write_parquet
from uniprot_extract.models import Entry

DUMP_URL = (
    "https://ftp.uniprot.org/pub/databases/uniprot/current_release/"
    "knowledgebase/complete/uniprot_sprot.xml.gz"
)
RAW_PATH = os.path.join("data", "raw", "uniprot_sprot.xml.gz")
JSONL_PATH = os.path.join("data", "uniprot_sprot.jsonl")
PARQUET_PATH = os.path.join("data", "uniprot_sprot.parquet")

REVIEWED_DATASET = "Swiss-Prot"


class FatalEntryError(Exception):
    """An in-stream error that ends the extraction run."""

    def __init__(self, error: UniProtExtractError) -> None:
        self.error = error
        super().__init__(str(error))


def _matches(
    entry: Entry,
    taxon_id: Optional[str],
    reviewed_only: bool,
    min_length: int,
    max_length: Optional[int],
    keyword: Optional[str],
) -> bool:
    if reviewed_only and entry.dataset != REVIEWED_DATASET:
        return False
    if taxon_id and entry.organism.taxon_id != taxon_id:
        return False
    length = entry.sequence.length or len(entry.sequence.value)
    if length < min_length:
        return False
    if max_length is not None and length > max_length:
        return False
    if keyword and not any(kw.value.lower() == keyword.lower() for kw in entry.keywords):
        return False
    return True


def build_filtered_rows(
    entries: EntryStream,
    max_entries: Optional[int],
    taxon_id: Optional[str],
    reviewed_only: bool,
    min_length: int,
    max_length: Optional[int],
    keyword: Optional[str],
):
    seen = 0
    written = 0
    failed = 0
    filtered = 0

    def generator() -> Iterator[dict]:
        nonlocal seen, written, failed, filtered
        with entries:
            for entry, error in islice(entries, max_entries):
                seen += 1
                if error is not None:
                    if entries.on_error is ErrorPolicy.STOP or entry is None:
                        raise FatalEntryError(error)
                    failed += 1
                    continue
                if not _matches(entry, taxon_id, reviewed_only, min_length, max_length, keyword):
                    filtered += 1
                    continue
                written += 1
                yield entry_to_row(entry)

    return generator(), lambda: (seen, written, failed, filtered)


def list_accessions(entries: EntryStream, max_entries: Optional[int]) -> int:
    """Print the accessions of every entry, one entry per line."""
    count = 0
    with entries:
        for entry, error in islice(entries, max_entries):
            if error is not None:
                raise FatalEntryError(error)
            print(f"Found entry with accession(s): {', '.join(entry.accessions)}")
            count += 1
    print("Finished processing entries.")
    return count


def quality_checks(parquet_path: str) -> None:
    dataset = Dataset.from_parquet(parquet_path)
    print("Dataset features:")
    print(dataset.features)

    print("Sample rows:")
    for idx in range(min(3, len(dataset))):
        row = dict(dataset[idx])
        row["sequence"] = (row.get("sequence") or "")[:60]
        print(json.dumps(row, ensure_ascii=False))

    for column in ("accession", "sequence"):
        if column not in dataset.column_names:
            raise AssertionError(f"Expected '{column}' column in dataset")
    if not all(dataset["accession"]):
        raise AssertionError("Found rows without an accession")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Extract entries from UniProtKB XML dumps.")
    parser.add_argument("--input", default=None, help="Path to a .xml.gz dump (downloads Swiss-Prot if omitted)")
    parser.add_argument("--max-entries", type=int, default=None, help="Max entries to process")
    parser.add_argument("--taxon-id", default=None, help="Keep only entries of this NCBI taxonomy id")
    parser.add_argument(
        "--reviewed-only",
        action="store_true",
        help="Keep only Swiss-Prot (reviewed) entries",
    )
    parser.add_argument("--min-length", type=int, default=0, help="Minimum sequence length")
    parser.add_argument("--max-length", type=int, default=None, help="Maximum sequence length")
    parser.add_argument("--keyword", default=None, help="Keep only entries carrying this keyword")
    parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Skip entries that fail to decode instead of stopping",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="Print accessions instead of writing JSONL/Parquet",
    )
    parser.add_argument("--jsonl", default=JSONL_PATH, help="JSONL output path")
    parser.add_argument("--parquet", default=PARQUET_PATH, help="Parquet output path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[list] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    input_path = args.input
    if input_path is None:
        input_path = RAW_PATH
        if not os.path.exists(RAW_PATH):
            print(f"Downloading dump to {RAW_PATH}...")
            download_dump(DUMP_URL, RAW_PATH)

    policy = ErrorPolicy.CONTINUE if args.continue_on_error else ErrorPolicy.STOP
    try:
        entries = iter_entries(input_path, on_error=policy)
    except UniProtExtractError as exc:
        parser.exit(1, f"error: {exc}\n")

    if args.list:
        try:
            list_accessions(entries, args.max_entries)
        except FatalEntryError as exc:
            parser.exit(1, f"Reading a UniProt entry failed: {exc}\n")
        return

    rows_iter, counts = build_filtered_rows(
        entries,
        args.max_entries,
        args.taxon_id,
        args.reviewed_only,
        args.min_length,
        args.max_length,
        args.keyword,
    )

    print(f"Writing JSONL to {args.jsonl}...")
    try:
        write_jsonl(tqdm(rows_iter, unit="entries", file=sys.stderr), args.jsonl)
    except FatalEntryError as exc:
        parser.exit(1, f"Reading a UniProt entry failed: {exc}\n")

    print(f"Writing Parquet to {args.parquet}...")
    write_parquet(iter_jsonl(args.jsonl), args.parquet)

    seen, written, failed, filtered = counts()
    print("Summary:")
    print(f"  Entries seen: {seen}")
    print(f"  Entries written: {written}")
    print(f"  Entries filtered out: {filtered}")
    print(f"  Entries failed to decode: {failed}")

    quality_checks(args.parquet)


if __name__ == "__main__":
    main()

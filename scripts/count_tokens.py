"""Count protein language model tokens in an extracted UniProt dataset."""

from __future__ import annotations

import argparse
import os
import time
from typing import Iterable

from datasets import load_dataset
from tqdm import tqdm
from transformers import AutoTokenizer

from uniprot_extract.io import iter_jsonl

DEFAULT_MODEL = "facebook/esm2_t6_8M_UR50D"
DEFAULT_JSONL = "data/uniprot_sprot.jsonl"


def _iter_parquet(path: str) -> Iterable[dict]:
    dataset = load_dataset("parquet", data_files=path, streaming=True)
    return dataset["train"]


def _count_tokens(sequence, tokenizer, add_special_tokens: bool, max_length: int | None) -> tuple[int, bool]:
    """Return ``(token_count, truncated)`` for one residue string."""
    if not sequence:
        return 0, False
    count = len(tokenizer.encode(sequence, add_special_tokens=add_special_tokens))
    if max_length is not None and count > max_length:
        return max_length, True
    return count, False


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Count total tokens of protein sequences using a Hugging Face tokenizer."
    )
    parser.add_argument("--input", default=DEFAULT_JSONL, help="Path to JSONL or Parquet dataset")
    parser.add_argument(
        "--format",
        choices=("jsonl", "parquet"),
        default="jsonl",
        help="Input dataset format",
    )
    parser.add_argument("--model", default=DEFAULT_MODEL, help="Hugging Face model ID for AutoTokenizer")
    parser.add_argument("--field", default="sequence", help="Dataset field holding residues")
    parser.add_argument(
        "--add-special-tokens",
        action="store_true",
        help="Include special tokens (CLS/EOS) in the count",
    )
    parser.add_argument(
        "--max-length",
        type=int,
        default=None,
        help="Context length; longer sequences are counted as truncated",
    )
    parser.add_argument("--max-entries", type=int, default=None, help="Stop after this many entries")
    parser.add_argument(
        "--report",
        default="reports/token_count_report.md",
        help="Path to write a markdown report",
    )
    args = parser.parse_args()

    tokenizer = AutoTokenizer.from_pretrained(args.model)

    if args.format == "jsonl":
        iterator = iter_jsonl(args.input)
    else:
        iterator = _iter_parquet(args.input)

    total_tokens = 0
    total_residues = 0
    total_entries = 0
    truncated = 0
    missing_fields = 0

    start = time.perf_counter()
    for row in tqdm(iterator, unit="entries"):
        if args.max_entries is not None and total_entries >= args.max_entries:
            break
        total_entries += 1
        sequence = row.get(args.field)
        if sequence is None:
            missing_fields += 1
            continue
        tokens, was_truncated = _count_tokens(sequence, tokenizer, args.add_special_tokens, args.max_length)
        total_tokens += tokens
        total_residues += len(sequence)
        truncated += was_truncated
    elapsed = time.perf_counter() - start

    avg_tokens = (total_tokens / total_entries) if total_entries else 0
    entries_per_sec = (total_entries / elapsed) if elapsed else 0

    print("Token count summary")
    print(f"  Model: {args.model}")
    print(f"  Entries: {total_entries}")
    if missing_fields:
        print(f"  Missing field: {missing_fields}")
    print(f"  Residues: {total_residues}")
    print(f"  Total tokens: {total_tokens}")
    print(f"  Avg tokens/entry: {avg_tokens:.2f}")
    if args.max_length is not None:
        print(f"  Truncated at {args.max_length}: {truncated}")
    print(f"  Elapsed: {elapsed:.2f}s")

    os.makedirs(os.path.dirname(args.report) or ".", exist_ok=True)
    timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
    with open(args.report, "w", encoding="utf-8") as handle:
        handle.write("# Token Count Report\n\n")
        handle.write("## Run details\n")
        handle.write(f"- Timestamp: {timestamp}\n")
        handle.write(f"- Input: {args.input}\n")
        handle.write(f"- Format: {args.format}\n")
        handle.write(f"- Model: {args.model}\n")
        handle.write(f"- Field: {args.field}\n")
        handle.write(f"- Add special tokens: {args.add_special_tokens}\n")
        handle.write(f"- Max length: {args.max_length}\n")
        handle.write(f"- Max entries: {args.max_entries}\n\n")
        handle.write("## Results\n")
        handle.write(f"- Entries: {total_entries}\n")
        if missing_fields:
            handle.write(f"- Missing field: {missing_fields}\n")
        handle.write(f"- Residues: {total_residues}\n")
        handle.write(f"- Total tokens: {total_tokens}\n")
        handle.write(f"- Truncated: {truncated}\n")
        handle.write(f"- Avg tokens/entry: {avg_tokens:.2f}\n")
        handle.write(f"- Elapsed: {elapsed:.2f}s\n")
        handle.write(f"- Entries/sec: {entries_per_sec:.2f}\n")


if __name__ == "__main__":
    main()

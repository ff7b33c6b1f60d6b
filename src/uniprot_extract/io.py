"""Output helpers for extracted UniProt entries."""

from __future__ import annotations

import json
import os
from typing import Any, Dict, Iterable, Iterator, List

from datasets import Dataset, Features, Sequence, Value, concatenate_datasets

from uniprot_extract.models import Entry


FEATURES = Features(
    {
        "accession": Value("string"),
        "accessions": Sequence(Value("string")),
        "entry_name": Value("string"),
        "dataset": Value("string"),
        "created": Value("string"),
        "modified": Value("string"),
        "version": Value("int32"),
        "protein_name": Value("string"),
        "gene_names": Sequence(Value("string")),
        "organism": Value("string"),
        "taxon_id": Value("string"),
        "lineage": Sequence(Value("string")),
        "protein_existence": Value("string"),
        "keywords": Sequence(Value("string")),
        "functions": Sequence(Value("string")),
        "feature_count": Value("int32"),
        "sequence": Value("string"),
        "length": Value("int32"),
        "mass": Value("int64"),
        "checksum": Value("string"),
    }
)


def entry_to_row(entry: Entry) -> Dict[str, Any]:
    """Flatten an entry into a row matching ``FEATURES``."""
    recommended = entry.protein.recommended_name
    if recommended is None and entry.protein.names:
        recommended = entry.protein.names[0]
    return {
        "accession": entry.primary_accession,
        "accessions": list(entry.accessions),
        "entry_name": entry.names[0] if entry.names else "",
        "dataset": entry.dataset,
        "created": entry.created.isoformat() if entry.created else "",
        "modified": entry.modified.isoformat() if entry.modified else "",
        "version": entry.version,
        "protein_name": recommended.full_name.value if recommended else "",
        "gene_names": [name.value for gene in entry.genes for name in gene.names],
        "organism": entry.organism.scientific_name,
        "taxon_id": entry.organism.taxon_id,
        "lineage": [taxon.value for taxon in entry.organism.lineage],
        "protein_existence": entry.protein_existence.type,
        "keywords": [keyword.value for keyword in entry.keywords],
        "functions": [
            text.value for comment in entry.comments if comment.type == "function" for text in comment.texts
        ],
        "feature_count": len(entry.features),
        "sequence": entry.sequence.value,
        "length": entry.sequence.length,
        "mass": entry.sequence.mass,
        "checksum": entry.sequence.checksum,
    }


def write_jsonl(rows_iter: Iterable[dict], out_path: str) -> int:
    """Write rows as JSONL with one object per line and return the row count.

    Rows go to a temporary file that replaces ``out_path`` only once every row
    is written, so a failure while producing rows leaves no partial output.
    """
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    tmp_path = f"{out_path}.tmp"
    count = 0
    try:
        with open(tmp_path, "w", encoding="utf-8") as handle:
            for row in rows_iter:
                handle.write(json.dumps(row, ensure_ascii=False) + "\n")
                count += 1
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    os.replace(tmp_path, out_path)
    return count


def iter_jsonl(path: str) -> Iterator[dict]:
    with open(path, "r", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid JSON on line {line_number} of {path}") from exc


def _chunk_rows(rows_iter: Iterable[dict], batch_size: int) -> Iterable[List[dict]]:
    batch: List[dict] = []
    for row in rows_iter:
        batch.append(row)
        if len(batch) >= batch_size:
            yield batch
            batch = []
    if batch:
        yield batch


def write_parquet(rows_iter: Iterable[dict], out_path: str, batch_size: int = 10_000) -> List[str]:
    """Write rows to parquet shards and merge them into a final dataset.

    Returns the shard paths, which are left next to the merged file.
    """
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)

    shard_paths = []
    for index, batch in enumerate(_chunk_rows(rows_iter, batch_size), start=1):
        dataset = Dataset.from_list(batch, features=FEATURES)
        shard_path = out_path.replace(".parquet", f"_part_{index:05d}.parquet")
        dataset.to_parquet(shard_path)
        shard_paths.append(shard_path)

    if not shard_paths:
        Dataset.from_list([], features=FEATURES).to_parquet(out_path)
        return shard_paths

    datasets = [Dataset.from_parquet(path) for path in shard_paths]
    combined = concatenate_datasets(datasets)
    combined.to_parquet(out_path)
    return shard_paths

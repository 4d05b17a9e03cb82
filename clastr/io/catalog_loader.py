"""
Reference catalog loading from tab-separated files.

One row per reported allele set:

    accession  name  species  marker  alleles  [sources]  [problem]

Several rows with the same accession and marker are alternative allele sets
for that marker; the resolver expands them into candidate profiles. Rows
with a blank alleles cell report no result and are skipped.
"""

from pathlib import Path
from typing import Dict, Optional
import logging

import pandas as pd

from ..catalog import Catalog
from ..config import SPECIES, get_species
from ..core.markers import normalize_key
from ..core.models import CellLine, Marker

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ('accession', 'name', 'species', 'marker', 'alleles')


def _split_list(value) -> list:
    if pd.isna(value):
        return []
    return [token.strip() for token in str(value).split(',') if token.strip()]


def load_catalog(
    path: Path,
    version: str = 'unknown',
    catalog: Optional[Catalog] = None,
) -> Catalog:
    """
    Load reference cell lines from a catalog TSV.

    Args:
        path: Path to catalog TSV
        version: Release tag of the data set
        catalog: Existing catalog to extend (a new one is created if None)

    Returns:
        Catalog with every cell line resolved into candidate profiles

    Raises:
        ValueError: If required columns are missing or a species is unknown
    """
    df = pd.read_csv(path, sep='\t', dtype=str, keep_default_na=False, na_values=[''])

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Catalog is missing required columns: {', '.join(missing)}")

    if catalog is None:
        catalog = Catalog(version=version, species=SPECIES)

    cell_lines: Dict[str, CellLine] = {}

    for _, row in df.iterrows():
        accession = str(row['accession']).strip()

        cell_line = cell_lines.get(accession)
        if cell_line is None:
            species = get_species(str(row['species']))
            if species is None:
                raise ValueError(f"Unknown species for {accession}: {row['species']}")

            problem = row.get('problem')
            cell_line = CellLine(
                accession=accession,
                name=str(row['name']).strip(),
                species=species.name,
                problem=None if pd.isna(problem) else str(problem).strip(),
            )
            cell_lines[accession] = cell_line

        if pd.isna(row['marker']):
            continue

        alleles = [a.upper() for a in _split_list(row['alleles'])]
        if not alleles:
            logger.debug(f"Skipping {accession} {row['marker']}: no alleles reported")
            continue

        marker = Marker(
            name=normalize_key(str(row['marker'])),
            alleles=alleles,
            sources=set(_split_list(row.get('sources'))),
        )
        cell_line.add_alternative(marker)

    catalog.extend(cell_lines.values())

    ambiguous = sum(1 for c in cell_lines.values() if c.is_ambiguous)
    logger.info(
        f"Loaded {len(cell_lines)} cell lines ({ambiguous} with conflicting markers) from {path}"
    )

    return catalog

"""
Command-line interface for CLASTR.

CLASTR: Cell Line Authentication using STR
"""

import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Tuple

import click

from . import __version__
from .config import EngineConfig
from .exceptions import ClastrError


def _setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def _load_config(config_path: Optional[str], catalog: Optional[str],
                 dataset_version: Optional[str], threads: Optional[int]) -> EngineConfig:
    """Build the engine configuration; CLI options override the YAML file."""
    config = EngineConfig.from_yaml(Path(config_path)) if config_path else EngineConfig()

    if catalog:
        config.catalog = Path(catalog)
    if dataset_version:
        config.dataset_version = dataset_version
    if threads:
        config.workers = threads

    if config.catalog is None:
        click.echo("Error: Provide --catalog or a config file with a catalog entry", err=True)
        sys.exit(1)
    if config.workers < 1:
        click.echo("Error: --threads must be >= 1", err=True)
        sys.exit(1)

    return config


def _parse_params(params: Tuple[str, ...]) -> Dict[str, str]:
    """Parse KEY=VALUE pairs into a request mapping."""
    mapping = {}
    for item in params:
        if '=' not in item:
            click.echo(f"Error: Parameter must be KEY=VALUE, got: {item}", err=True)
            sys.exit(1)
        key, value = item.split('=', 1)
        mapping[key] = value
    return mapping


def _open_catalog(config: EngineConfig):
    from .io.catalog_loader import load_catalog

    try:
        return load_catalog(config.catalog, version=config.dataset_version)
    except (OSError, ValueError) as e:
        click.echo(f"Error loading catalog: {e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
def cli():
    """CLASTR: Cell Line Authentication using STR."""
    pass


@cli.command()
@click.option('--catalog', '-c', type=click.Path(exists=True),
              help='Reference catalog TSV')
@click.option('--config', 'config_path', type=click.Path(exists=True),
              help='YAML configuration file')
@click.option('--param', '-p', 'params', multiple=True,
              help='Search parameter or marker as KEY=VALUE (repeatable)')
@click.option('--output', '-o', type=click.Path(),
              help='Output file (.tsv, .csv or .json; otherwise the outputFormat parameter); printed as TSV if omitted')
@click.option('--dataset-version', type=str,
              help='Release tag of the reference data set')
@click.option('--threads', '-t', type=int,
              help='Worker processes for the catalog scan (default: 1)')
def search(catalog, config_path, params, output, dataset_version, threads):
    """
    Search a query STR profile against the reference catalog.

    \b
    Parameters (all optional):
      species=human|mouse|dog  algorithm=1|2|3  scoringMode=1|2|3
      scoreFilter=60  minMarkers=8  maxResults=200
      includeAmelogenin=false  description=TEXT  outputFormat=tsv|csv|json

    \b
    Example:
      clastr search -c catalog.tsv \\
        -p "Amelogenin=X" -p "CSF1PO=11,12" -p "D5S818=11,12" \\
        -p "TH01=7,9.3" -p "vWA=16,18" -p algorithm=2 -o hits.tsv
    """
    from .io.output import format_from_path, results_to_rows, write_results
    from .search import SearchEngine

    config = _load_config(config_path, catalog, dataset_version, threads)
    _setup_logging(config.log_level)

    mapping = _parse_params(params)
    catalog_obj = _open_catalog(config)

    try:
        result = SearchEngine(catalog_obj, config).search(mapping)
    except ClastrError as e:
        click.echo(f"Error: {e.full_message}", err=True)
        sys.exit(1)

    if output:
        output_format = format_from_path(Path(output)) or result.output_format or 'tsv'
        write_results(result, Path(output), output_format)
        click.echo(f"{len(result.results)} hits written to: {output}")
    else:
        click.echo(result.metadata_line())
        rows = results_to_rows(result)
        columns = ['accession', 'name', 'species', 'score', 'markers', 'problem']
        columns += [m.name for m in result.parameters.markers]
        click.echo('\t'.join(columns))
        for row in rows:
            click.echo('\t'.join(str(row[c]) for c in columns))


@cli.command()
@click.option('--catalog', '-c', type=click.Path(exists=True),
              help='Reference catalog TSV')
@click.option('--config', 'config_path', type=click.Path(exists=True),
              help='YAML configuration file')
@click.option('--input', '-i', 'queries', type=click.Path(exists=True), required=True,
              help='Queries: JSON array of objects or TSV with one query per row')
@click.option('--output', '-o', type=click.Path(), required=True,
              help='Output directory')
@click.option('--dataset-version', type=str,
              help='Release tag of the reference data set')
@click.option('--threads', '-t', type=int,
              help='Worker processes for the catalog scan (default: 1)')
def batch(catalog, config_path, queries, output, dataset_version, threads):
    """
    Run several independent searches.

    Queries without a description are named "Sample 1", "Sample 2", ...
    Each query is written as query_N.tsv, or in its outputFormat if given.

    \b
    Example:
      clastr batch -c catalog.tsv -i queries.json -o results/
    """
    from .batch import run_batch
    from .io.output import write_batch_summary, write_results, write_results_json
    from .io.queries import load_queries

    config = _load_config(config_path, catalog, dataset_version, threads)
    _setup_logging(config.log_level)

    try:
        parameter_sets = load_queries(Path(queries))
    except (OSError, ValueError) as e:
        click.echo(f"Error loading queries: {e}", err=True)
        sys.exit(1)

    catalog_obj = _open_catalog(config)

    try:
        results = run_batch(parameter_sets, catalog_obj, config)
    except ClastrError as e:
        click.echo(f"Error: {e.full_message}", err=True)
        sys.exit(1)

    output_path = Path(output)
    output_path.mkdir(parents=True, exist_ok=True)

    for i, result in enumerate(results, 1):
        output_format = result.output_format or 'tsv'
        write_results(result, output_path / f"query_{i}.{output_format}", output_format)
    write_results_json(results, output_path / "batch_results.json")
    write_batch_summary(results, output_path / "batch_summary.tsv")

    click.echo(f"\nProcessed {len(results)} queries")
    click.echo(f"Results written to: {output_path}")


@cli.command()
@click.option('--catalog', '-c', type=click.Path(exists=True), required=True,
              help='Reference catalog TSV')
def info(catalog):
    """Display catalog statistics without running a search."""
    from .io.catalog_loader import load_catalog

    try:
        catalog_obj = load_catalog(Path(catalog))
    except (OSError, ValueError) as e:
        click.echo(f"Error loading catalog: {e}", err=True)
        sys.exit(1)

    click.echo(f"Catalog: {catalog}")
    click.echo(f"Cell lines: {len(catalog_obj)}")
    for species, stats in catalog_obj.summary().items():
        if not stats['cell_lines']:
            continue
        click.echo(f"\n{species}:")
        click.echo(f"  Cell lines: {stats['cell_lines']}")
        click.echo(f"  With conflicting markers: {stats['ambiguous']}")
        click.echo(f"  Candidate profiles: {stats['candidate_profiles']}")
        click.echo(f"  Largest candidate set: {stats['max_candidates']}")


@cli.command()
@click.option('--input', '-i', 'input_path', type=click.Path(exists=True), required=True,
              help='JSON results written by search or batch')
@click.option('--output', '-o', type=click.Path(), required=True,
              help='Output file; numbered per search when the input holds several')
@click.option('--format', '-f', 'output_format', type=click.Choice(['tsv', 'csv', 'json']),
              help='Output format (default: from the output extension, else tsv)')
def convert(input_path, output, output_format):
    """
    Convert stored JSON results to another format.

    \b
    Example:
      clastr convert -i results/batch_results.json -o hits.tsv
    """
    from .io.output import format_from_path, load_results_json, write_results

    try:
        results = load_results_json(Path(input_path))
    except (OSError, ValueError) as e:
        click.echo(f"Error loading results: {e}", err=True)
        sys.exit(1)

    output_path = Path(output)
    output_format = output_format or format_from_path(output_path) or 'tsv'

    if len(results) == 1:
        targets = [output_path]
    else:
        targets = [
            output_path.with_name(f"{output_path.stem}_{i}{output_path.suffix}")
            for i in range(1, len(results) + 1)
        ]

    for result, target in zip(results, targets):
        write_results(result, target, output_format)

    click.echo(f"Converted {len(results)} searches to {output_format}")


@cli.command()
@click.option('--output', '-o', type=click.Path(), default='clastr_config.yaml',
              help='Output config file path')
def init(output):
    """Generate a template configuration file."""
    template = '''# CLASTR Configuration Template
# Edit this file to configure your searches

# Reference catalog (TSV: accession, name, species, marker, alleles, sources, problem)
catalog: catalog.tsv

# Release tag reported with every result
dataset_version: "48.0"

# Worker processes for the catalog scan (1 = sequential)
workers: 1

# Logging level: DEBUG, INFO, WARNING, ERROR
log_level: INFO

# Defaults applied when a query omits a parameter
defaults:
  species: human
  algorithm: 1          # 1 = exact, 2 = overlap, 3 = tolerant
  scoringMode: 1        # 1 = strict, 2 = lenient, 3 = partial credit
  scoreFilter: 60
  minMarkers: 8
  maxResults: 200
  includeAmelogenin: false
'''

    with open(output, 'w') as f:
        f.write(template)

    click.echo(f"Generated configuration template: {output}")
    click.echo("\nEdit this file and run:")
    click.echo(f"  clastr search --config {output} -p 'D5S818=11,12' ...")


if __name__ == '__main__':
    cli()

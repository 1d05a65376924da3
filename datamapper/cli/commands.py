"""Command line interface."""
from pathlib import Path
from typing import Dict, Optional, Tuple
import json
import logging
import sys

import click
from colorama import Fore, Style, init

from datamapper import __version__
from datamapper.builder.converter import MappingConverter
from datamapper.config import app_config
from datamapper.exceptions import DataMapperError
from datamapper.exporter.json_exporter import JsonExporter
from datamapper.mapper.normalizer import MappingNormalizer
from datamapper.parser.parser_factory import MappingParserFactory
from datamapper.preprocess.preprocessor import Preprocessor
from datamapper.reader.reader_factory import ReaderFactory, load_source
from datamapper.schema import vocabulary
from datamapper.schema.models import MappingDefinition

# Initialize colorama
init(autoreset=True)

logger = logging.getLogger(__name__)

TABULAR_FORMATS = ("csv", "tsv", "txt", "xlsx", "xlsm")


def print_banner():
    """Print application banner."""
    click.echo(f"{Fore.CYAN}{'=' * 44}")
    click.echo(f"{Fore.CYAN}║   {Fore.WHITE}datamapper{Fore.CYAN}                           ║")
    click.echo(f"{Fore.CYAN}║   {Fore.WHITE}Declarative source data mapping{Fore.CYAN}      ║")
    click.echo(f"{Fore.CYAN}{'=' * 44}{Style.RESET_ALL}")
    click.echo()


def fail(message: str) -> None:
    """Print an error and exit with code 1."""
    logger.error(message)
    click.echo(f"{Fore.RED}❌ {message}", err=True)
    sys.exit(1)


def parse_assignments(values: Tuple[str, ...], option: str) -> Dict[str, str]:
    """Parse repeated name=value options."""
    parsed = {}
    for item in values:
        name, separator, value = item.partition("=")
        if not separator or not name.strip():
            raise click.BadParameter(f"expected name=value, got '{item}'", param_hint=option)
        parsed[name.strip()] = value
    return parsed


def load_mapping(normalizer: MappingNormalizer, reference: str, syntax: Optional[str] = None) -> MappingDefinition:
    """Load a mapping from a file path, else from a resolver reference."""
    path = Path(reference)
    if path.is_file():
        ext = path.suffix.lstrip(".").lower()
        hint = syntax or (ext if ext in MappingParserFactory.PARSERS else None)
        return normalizer.normalize(path.read_bytes(), hint, reference=str(path.resolve()))
    return normalizer.load(reference, syntax)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """datamapper - convert source data with declarative mappings."""
    level = logging.DEBUG if verbose else getattr(logging, app_config.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.argument("source")
@click.option("-m", "--mapping", "mapping_ref", help="Mapping file or reference (module:, user:, mapping:)")
@click.option(
    "--syntax",
    type=click.Choice(["xml", "array", "json", "ini"]),
    help="Mapping syntax (detected when omitted)",
)
@click.option(
    "--format",
    "source_format",
    type=click.Choice(["json", "xml", "csv", "xlsx"]),
    help="Source format (detected when omitted)",
)
@click.option("--var", "variables", multiple=True, help="Variable as name=value")
@click.option("--preprocess", "preprocess_refs", multiple=True, help="XSLT transform applied first")
@click.option("--header-mapping", is_flag=True, help="Use the header row of a csv/xlsx source as mapping")
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Output JSON file")
@click.option("--tuples", is_flag=True, help="Output (field, datatype, language, visibility, value) tuples")
def convert(source, mapping_ref, syntax, source_format, variables, preprocess_refs, header_mapping, output, tuples):
    """Convert SOURCE (file or http URL) with a mapping."""
    if not mapping_ref and not header_mapping:
        raise click.UsageError("Missing option '-m' / '--mapping' (or use --header-mapping)")
    scope = parse_assignments(variables, "--var")

    try:
        content, name = load_source(source)
        source_format = source_format or ReaderFactory.detect_format(content, name)
        normalizer = MappingNormalizer()
        converter = MappingConverter(normalizer=normalizer)

        if header_mapping:
            rows = ReaderFactory.read_rows(content, source_format)
            mapping = normalizer.normalize(rows[0] if rows else [])
            records = rows[1:]
        else:
            mapping = load_mapping(normalizer, mapping_ref, syntax)
            if source_format in TABULAR_FORMATS:
                records = ReaderFactory.read_records(content, source_format)
            else:
                records = [content]

        if preprocess_refs and source_format in TABULAR_FORMATS:
            raise click.UsageError("--preprocess only applies to xml and json sources")

        results = [
            converter.convert(
                record, mapping, scope, preprocess=list(preprocess_refs), source_format=source_format
            )
            for record in records
        ]
    except DataMapperError as exc:
        fail(str(exc))
        return

    text = JsonExporter().export(Path(output) if output else None, results, mapping, tuples=tuples)
    if output:
        values = sum(len(result) for result in results)
        click.echo(f"{Fore.GREEN}✅ {len(results)} record(s), {values} value(s) written to {output}")
    else:
        click.echo(text)


@cli.command()
@click.argument("mapping_ref")
@click.option(
    "--syntax",
    type=click.Choice(["xml", "array", "json", "ini"]),
    help="Mapping syntax (detected when omitted)",
)
def validate(mapping_ref, syntax):
    """Validate a mapping and print its normalized summary."""
    print_banner()
    try:
        mapping = load_mapping(MappingNormalizer(), mapping_ref, syntax)
    except DataMapperError as exc:
        fail(str(exc))
        return

    click.echo(f"{Fore.GREEN}✅ Mapping is valid: {mapping.info.label or mapping_ref}")
    click.echo(f"   Maps: {len(mapping.entries)}")
    click.echo(f"   Tables: {', '.join(mapping.table_names) or '-'}")
    if mapping.includes:
        click.echo(f"   Includes: {', '.join(mapping.includes)}")
    if mapping.info.querier:
        click.echo(f"   Default querier: {mapping.info.querier}")
    for entry in mapping.entries:
        source = f"{entry.source.querier or '*'}:{entry.source.path}" if not entry.source.is_empty else "-"
        click.echo(f"   #{entry.index:<3} {source} -> {entry.target.field}")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print editor hints as JSON")
def schema(as_json):
    """Print the mapping vocabulary."""
    if as_json:
        click.echo(json.dumps(vocabulary.to_hints(), indent=2))
        return

    click.echo(f"{Fore.YELLOW}Mapping vocabulary")
    click.echo(f"{Fore.YELLOW}{'=' * 30}")
    for element in vocabulary.ELEMENTS.values():
        click.echo(f"{Fore.CYAN}<{element.name}>{Style.RESET_ALL} {element.description}")
        if element.attributes:
            click.echo(f"   attributes: {', '.join(element.attributes)}")
        if element.children:
            click.echo(f"   children:   {', '.join(element.children)}")


@cli.command()
@click.argument("source")
@click.argument("transform")
@click.option("-p", "--param", "params", multiple=True, help="Stylesheet parameter as name=value")
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Output file")
def preprocess(source, transform, params, output):
    """Apply the XSLT TRANSFORM to SOURCE."""
    parsed = parse_assignments(params, "--param")
    try:
        content, _ = load_source(source)
        result = Preprocessor().preprocess(content, transform, parsed)
    except DataMapperError as exc:
        fail(str(exc))
        return

    if output:
        Path(output).write_bytes(result)
        click.echo(f"{Fore.GREEN}✅ Output written to {output}")
    else:
        click.echo(result.decode("utf-8", errors="replace"))

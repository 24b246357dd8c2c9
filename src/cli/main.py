"""Main CLI entry point for the redmine-wiki-migrate command.

This module provides the Typer application with one sub-command per
migration stage. Stages communicate only through the bucket files of a
workspace directory:

    analyze  -> extract -> convert -> compose
"""

import logging
import os
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

import typer

from src.cli.errors import WorkspaceNotFoundError
from src.cli.models import ExitCode
from src.cli.output import OutputHandler
from src.content_converter.errors import ConversionError
from src.content_converter.pandoc_runner import PandocRunner
from src.content_converter.wiki_converter import WikiConverter
from src.export.composer import OUTPUT_FILENAME, RESULT_DIR, DumpComposer
from src.export.extractor import AttachmentExtractor
from src.redmine_source.connection import RedmineSource
from src.redmine_source.errors import MigrationError, SourceDataError
from src.redmine_source.settings import ConnectionSettings, SettingsLoader
from src.wiki_analyzer.analyzer import WikiAnalyzer
from src.wiki_analyzer.config_loader import CustomizationLoader, Customizations
from src.wiki_analyzer.errors import IntegrityError
from src.workspace import buckets
from src.workspace.bucket_store import BucketStore

VERSION = "0.1.0"

app = typer.Typer(
    name="redmine-wiki-migrate",
    help="""Migrate Redmine wikis into a MediaWiki XML import dump.

STAGES (run in order, all sharing one workspace directory):
  redmine-wiki-migrate analyze --src connection.yaml --dest ./work
  redmine-wiki-migrate extract --src /var/lib/redmine/files --dest ./work
  redmine-wiki-migrate convert --dest ./work
  redmine-wiki-migrate compose --dest ./work""",
    add_completion=False,
    rich_markup_mode=None,  # Disable Rich markup to avoid compatibility issues
    no_args_is_help=True,
)

# Module logger
logger = logging.getLogger(__name__)

PANDOC_INSTALL_MESSAGE = """pandoc is required by the convert stage but was not found on PATH.

Install it with your package manager, for example:
  apt-get install pandoc
  brew install pandoc
or download a release from https://pandoc.org/installing.html"""

LOGDIR_OPTION = typer.Option(
    None,
    "--logdir",
    help="Directory for log files (creates timestamped log file)",
)
VERBOSITY_OPTION = typer.Option(
    0,
    "--verbosity",
    "-v",
    help="Verbosity level: 0=summary, 1=info, 2=debug",
)
NO_COLOR_OPTION = typer.Option(
    False,
    "--no-color",
    help="Disable colored output",
)


def _configure_logging(verbosity: int, logdir: Optional[str] = None) -> None:
    """Configure logging based on verbosity level.

    Configures only the 'src' namespace logger to avoid affecting third-party
    libraries. The root logger is left unchanged.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG)
        logdir: Optional directory for log files (creates timestamped log file)
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:  # verbosity >= 2
        level = logging.DEBUG

    app_logger = logging.getLogger("src")
    app_logger.setLevel(level)

    log_format = "%(asctime)s [%(levelname)8s] %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(log_format, datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if logdir:
        log_path = Path(logdir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"redmine-wiki-migrate_{timestamp}.log"

        file_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        file_formatter = logging.Formatter(file_format, datefmt=date_format)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        app_logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")


@contextmanager
def _exit_on_error(output: OutputHandler, stage: str) -> Iterator[None]:
    """Map migration errors raised inside a stage to exit codes."""
    try:
        yield
    except typer.Exit:
        raise
    except IntegrityError as e:
        logger.error(f"{stage} aborted: {e}")
        output.error(f"Integrity error: {e}")
        raise typer.Exit(ExitCode.INTEGRITY_ERROR)
    except SourceDataError as e:
        logger.error(f"{stage} aborted: {e}")
        output.error(f"Database error: {e}")
        raise typer.Exit(ExitCode.SOURCE_ERROR)
    except MigrationError as e:
        logger.error(f"{stage} failed: {e}")
        output.error(f"{stage} failed: {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    except Exception as e:
        logger.exception(f"Unexpected error during {stage}")
        output.error(f"Unexpected error: {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)


def _load_settings(src: str) -> ConnectionSettings:
    """Load connection settings from a YAML file or a directory holding a .env file."""
    if os.path.isdir(src):
        return SettingsLoader.load(env_file=os.path.join(src, ".env"))
    return SettingsLoader.load(src)


def _open_workspace(workspace_dir: str, names) -> BucketStore:
    """Load the given buckets of an analyzed workspace.

    Raises:
        WorkspaceNotFoundError: If the workspace has no bucket directory
    """
    store = BucketStore(workspace_dir, names)
    if not os.path.isdir(store.bucket_dir):
        raise WorkspaceNotFoundError(workspace_dir)
    store.load()
    return store


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"redmine-wiki-migrate version {VERSION}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Migrate Redmine wikis into a MediaWiki XML import dump."""


@app.command()
def analyze(
    src: str = typer.Option(
        ...,
        "--src",
        help="Connection YAML file, or a directory holding a .env with REDMINE_DB_URL",
    ),
    dest: str = typer.Option(..., "--dest", help="Workspace directory"),
    customizations: Optional[str] = typer.Option(
        None,
        "--customizations",
        help="YAML file with migration customizations",
    ),
    logdir: Optional[str] = LOGDIR_OPTION,
    verbosity: int = VERBOSITY_OPTION,
    no_color: bool = NO_COLOR_OPTION,
) -> None:
    """Read the Redmine database and build the title space."""
    _configure_logging(verbosity, logdir)
    output = OutputHandler(verbosity=verbosity, no_color=no_color)

    with _exit_on_error(output, "analyze"):
        settings = _load_settings(src)
        if customizations:
            rules = CustomizationLoader.load(customizations)
        else:
            rules = Customizations()
        output.info(f"  Workspace: {dest}")
        if settings.wiki_ids:
            output.info(f"  Wikis: {', '.join(str(wiki_id) for wiki_id in settings.wiki_ids)}")

        store = BucketStore(dest, buckets.ANALYZE_BUCKETS)
        source = RedmineSource.from_url(settings.url)
        with output.spinner("Analyzing Redmine wikis..."):
            stats = WikiAnalyzer(source, store, rules, settings).run()
        store.save()

        output.print_statistics(stats)
        output.success(f"Analyzed {stats.total_pages} pages into {store.bucket_dir}")

    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def extract(
    src: str = typer.Option(..., "--src", help="Redmine files directory"),
    dest: str = typer.Option(..., "--dest", help="Workspace directory"),
    logdir: Optional[str] = LOGDIR_OPTION,
    verbosity: int = VERBOSITY_OPTION,
    no_color: bool = NO_COLOR_OPTION,
) -> None:
    """Copy attachment files and write diagram images into the workspace."""
    _configure_logging(verbosity, logdir)
    output = OutputHandler(verbosity=verbosity, no_color=no_color)

    with _exit_on_error(output, "extract"):
        if not os.path.isdir(src):
            output.error(f"Files directory not found: {src}")
            raise typer.Exit(ExitCode.GENERAL_ERROR)

        store = _open_workspace(dest, buckets.EXTRACT_BUCKETS)
        extractor = AttachmentExtractor(store, src, dest)
        with output.spinner("Extracting attachments..."):
            summary = extractor.run()
        store.save()

        output.print_extraction_summary(summary)
        output.success(f"Files written to {extractor.target_dir}")

    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def convert(
    dest: str = typer.Option(..., "--dest", help="Workspace directory"),
    workers: int = typer.Option(
        1,
        "--workers",
        help="Number of pages converted concurrently",
        min=1,
    ),
    logdir: Optional[str] = LOGDIR_OPTION,
    verbosity: int = VERBOSITY_OPTION,
    no_color: bool = NO_COLOR_OPTION,
) -> None:
    """Convert every revision body to wikitext."""
    _configure_logging(verbosity, logdir)
    output = OutputHandler(verbosity=verbosity, no_color=no_color)

    with _exit_on_error(output, "convert"):
        runner = PandocRunner()
        if not runner.is_available():
            raise ConversionError(PANDOC_INSTALL_MESSAGE)

        store = _open_workspace(dest, buckets.CONVERT_BUCKETS)
        total = len(store.get(buckets.WIKI_PAGES))
        converter = WikiConverter(store, runner, max_workers=workers)
        with output.progress_bar(total, "Converting pages") as progress:
            task = progress.add_task("Converting pages", total=total)
            summary = converter.run(on_page=lambda page_id: progress.update(task, advance=1))
        store.save()

        output.print_conversion_summary(summary)

    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def compose(
    dest: str = typer.Option(..., "--dest", help="Workspace directory"),
    logdir: Optional[str] = LOGDIR_OPTION,
    verbosity: int = VERBOSITY_OPTION,
    no_color: bool = NO_COLOR_OPTION,
) -> None:
    """Write the XML import dump to <workspace>/result/redmine-output.xml."""
    _configure_logging(verbosity, logdir)
    output = OutputHandler(verbosity=verbosity, no_color=no_color)

    with _exit_on_error(output, "compose"):
        store = _open_workspace(dest, buckets.COMPOSE_BUCKETS)
        path = os.path.join(dest, RESULT_DIR, OUTPUT_FILENAME)
        with output.spinner("Composing XML dump..."):
            count = DumpComposer(store).write(path)

        output.success(f"Wrote {count} pages to {path}")

    raise typer.Exit(ExitCode.SUCCESS)


def main() -> None:
    """Main entry point for the CLI application.

    This function is called when the module is executed directly or
    when the console script is invoked.
    """
    app()


# Allow running as: python -m src.cli.main
if __name__ == "__main__":
    main()

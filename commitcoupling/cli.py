"""
Command-line interface for commitcoupling.

Provides commands for analyzing a repository's commit coupling, looking up its
web URL, and opening files in an editor.
"""
import json
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click

from commitcoupling.analyzer import get_repo_stats
from commitcoupling.config import AnalyzerConfig, recent_cutoff_from_days
from commitcoupling.editor import open_in_code_editor
from commitcoupling.errors import CommitCouplingError
from commitcoupling.git_files import get_git_repo_url
from commitcoupling.logging_config import setup_logging
from commitcoupling.tree import iter_files


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors.")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also append logs to this file.")
def main(verbose: bool, quiet: bool, log_file: Optional[str]):
    """commitcoupling - find files that change together in Git history."""
    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)


@main.command()
@click.argument("repository", type=click.Path(file_okay=False, path_type=Path), required=False)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML configuration file.",
)
@click.option("--exclude", "-e", multiple=True, help="Exclude paths containing this substring.")
@click.option("--recent-days", type=float, help="Size of the recency window in days.")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write JSON here instead of stdout.",
)
@click.option("--summary", is_flag=True, help="Print a risk summary instead of JSON.")
def analyze(
    repository: Optional[Path],
    config_path: Optional[Path],
    exclude: tuple[str, ...],
    recent_days: Optional[float],
    output: Optional[Path],
    summary: bool,
):
    """
    Analyze the commit coupling of a repository.

    The REPOSITORY argument overrides repo_path from the configuration file.
    """
    if config_path is None and repository is None:
        raise click.UsageError("Provide a REPOSITORY or --config")

    try:
        if config_path is not None:
            config = AnalyzerConfig.from_yaml(config_path)
            if repository is not None:
                config = replace(config, repo_path=repository)
        else:
            config = AnalyzerConfig(repo_path=repository)

        if exclude:
            config = replace(config, exclude_filters=config.exclude_filters + exclude)
        if recent_days is not None:
            config = replace(config, recent_cutoff=recent_cutoff_from_days(recent_days))

        result = get_repo_stats(config)
    except CommitCouplingError as e:
        raise click.ClickException(str(e)) from e

    for anomaly in result.anomalies:
        click.echo(f"  ! {anomaly}", err=True)

    if summary:
        files = list(iter_files(result.tree))
        click.echo(f"Analyzed {result.file_count} files across {result.commit_count} commits")
        for tier in ("high", "medium"):
            flagged = [f for f in files if f.stats.risk_tier.value == tier]
            click.echo(f"\n{tier.upper()} ({len(flagged)})")
            for node in flagged:
                click.echo(f"  {node.path}")
        return

    payload = json.dumps(result.to_dict()["tree"], indent=2, ensure_ascii=False)
    if output is not None:
        output.write_text(payload, encoding="utf-8")
        click.echo(f"Wrote {result.file_count} files to {output}", err=True)
    else:
        click.echo(payload)


@main.command("repo-url")
@click.argument("repository", type=click.Path(file_okay=False, path_type=Path))
def repo_url(repository: Path):
    """Print the web URL of the repository's origin remote."""
    try:
        click.echo(get_git_repo_url(repository))
    except CommitCouplingError as e:
        raise click.ClickException(str(e)) from e


@main.command("open")
@click.argument("path", type=click.Path(path_type=Path))
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML configuration file providing editor_command.",
)
@click.option("--editor", help="Editor command. Overrides editor_command from --config.")
def open_path(path: Path, config_path: Optional[Path], editor: Optional[str]):
    """Open PATH in a code editor."""
    try:
        if editor is None:
            editor = "code"
            if config_path is not None:
                editor = AnalyzerConfig.from_yaml(config_path).editor_command
        open_in_code_editor(path, editor=editor)
    except CommitCouplingError as e:
        raise click.ClickException(str(e)) from e


if __name__ == "__main__":
    main()

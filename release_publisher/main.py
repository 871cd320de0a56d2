"""CLI entry point for release publishing."""

import asyncio
import sys

import click
import structlog

from release_publisher.config.settings import LOG_LEVELS, ReleaseSettings
from release_publisher.engine.release_pipeline import ReleasePipeline
from release_publisher.exceptions import (
    ConfigurationError,
    ReleasePublisherError,
    ValidationError,
    format_error_chain,
)
from release_publisher.models.domain import ReleaseRequest, ReleaseResult
from release_publisher.providers.github_api import GitHubApiClient
from release_publisher.providers.github_rest import GitHubRestProvider
from release_publisher.utils.logging_config import configure_logging

log = structlog.get_logger(__name__)


@click.group()
@click.option(
    "--config",
    default=None,
    type=click.Path(dir_okay=False),
    help="Path to YAML settings file (defaults and RELEASE_* env vars otherwise)",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging level (overrides settings)",
)
@click.option("--json-logs/--console-logs", default=True, help="Log output format")
@click.pass_context
def cli(ctx: click.Context, config: str | None, log_level: str | None, json_logs: bool) -> None:
    """release-publisher: open operator release PRs on OperatorHub catalogs."""
    try:
        settings = ReleaseSettings.from_yaml(config) if config else ReleaseSettings()
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)
    except ValueError as e:
        click.echo(f"Error: Invalid settings: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error loading configuration: {e}", err=True)
        sys.exit(1)

    configure_logging(log_level or settings.log_level, json_format=json_logs)
    ctx.obj = {"settings": settings}


@cli.command()
@click.option("--version", "version", required=True, help="The release's version to publish.")
@click.option(
    "--gh-token",
    envvar="GITHUB_TOKEN",
    required=True,
    help="The GitHub token used to open pull requests in OperatorHub repos.",
)
@click.option("--fork-org", required=True, help="The fork org to use for opening PRs on repos of the same name.")
@click.option(
    "--csv",
    "csv_file",
    required=True,
    help="Path to the OLM cluster service version file, e.g. out/ibmcloud_operator.vX.Y.Z.clusterserviceversion.yaml",
)
@click.option(
    "--package",
    "package_file",
    required=True,
    help="Path to the OLM package file, e.g. out/ibmcloud-operator.package.yaml",
)
@click.option("--crd-glob", default=None, help="Glob matching the OLM custom resource definition files.")
@click.option("--draft", is_flag=True, help="Open PRs as drafts instead of normal PRs.")
@click.option("--signoff-name", default=None, help="The Git user name to use when signing off commits.")
@click.option("--signoff-email", default=None, help="The Git email to use when signing off commits.")
@click.pass_context
def release(
    ctx: click.Context,
    version: str,
    gh_token: str,
    fork_org: str,
    csv_file: str,
    package_file: str,
    crd_glob: str | None,
    draft: bool,
    signoff_name: str | None,
    signoff_email: str | None,
) -> None:
    """Publish a release by opening PRs in the Kubernetes and OpenShift catalogs."""
    settings: ReleaseSettings = ctx.obj["settings"]
    request = ReleaseRequest(
        version=version,
        fork_org=fork_org,
        github_token=gh_token,
        csv_file=csv_file,
        package_file=package_file,
        crd_glob=crd_glob,
        draft=draft,
        signoff_name=signoff_name,
        signoff_email=signoff_email,
    )

    try:
        asyncio.run(_run_release(settings, request))
    except ValidationError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(2)
    except ReleasePublisherError as e:
        click.echo(f"Release failed: {format_error_chain(e)}", err=True)
        log.debug("release_error", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)


def _print_result(result: ReleaseResult) -> None:
    click.echo(f"{result.label} PR opened: {result.url}")


async def _run_release(settings: ReleaseSettings, request: ReleaseRequest) -> list[ReleaseResult]:
    """Run the release pipeline with a network-backed GitHub client."""
    async with GitHubApiClient(request.github_token, timeout=settings.request_timeout) as client:
        pipeline = ReleasePipeline(GitHubRestProvider(client), settings)
        return await pipeline.run(request, on_result=_print_result)


if __name__ == "__main__":
    cli()

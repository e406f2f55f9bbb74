"""CLI commands for running the notifier."""

import asyncio
import logging

import click
import httpx

from ..container import configure_from_settings, get_container


def run_async(coro):
    """Run async coroutine in sync context."""
    return asyncio.run(coro)


def _build_registry():
    from ..scheduler.jobs import JobRegistry, create_report_jobs

    container = get_container()
    registry = JobRegistry()
    create_report_jobs(registry, container, container.settings.scheduler)
    return registry


@click.group()
@click.version_option(version="1.0.0")
def cli():
    """Asana to Telegram notification bot."""
    container = get_container()
    logging.basicConfig(
        level=container.settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    configure_from_settings(container)


@cli.command("serve")
@click.option("--host", "-h", default=None, help="Host to bind to")
@click.option("--port", "-p", default=None, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload")
def serve(host, port, reload: bool):
    """Start the webhook server."""
    import uvicorn

    settings = get_container().settings
    host = host or settings.host
    port = port or settings.port

    click.echo(f"Starting server at http://{host}:{port}")
    click.echo("Press Ctrl+C to stop")

    uvicorn.run(
        "src.api.app:app",
        host=host,
        port=port,
        reload=reload,
    )


@cli.command("register-webhooks")
@click.option("--target", "-t", default=None, help="Public URL of the server")
def register_webhooks(target):
    """Register Asana webhooks for every watched project."""
    from ..repositories.asana import AsanaRepository

    settings = get_container().settings
    asana = settings.asana

    if not asana.access_token:
        click.echo("ASANA_ACCESS_TOKEN is not set.", err=True)
        raise SystemExit(1)

    project_gids = asana.get_project_gids()
    if not project_gids:
        click.echo("ASANA_PROJECT_GID is not set.", err=True)
        raise SystemExit(1)

    base_url = target or settings.public_url
    if not base_url:
        click.echo("PUBLIC_URL is not set. Pass --target or set PUBLIC_URL.", err=True)
        raise SystemExit(1)
    webhook_url = f"{base_url.rstrip('/')}/webhook"

    repository = AsanaRepository(
        access_token=asana.access_token.get_secret_value(),
        base_url=asana.api_url,
        timeout=asana.timeout,
    )

    failures = 0
    for gid in project_gids:
        try:
            webhook_gid = run_async(repository.create_webhook(gid, webhook_url))
            click.echo(f"✅ Webhook {webhook_gid} registered for project {gid}")
        except httpx.HTTPStatusError as e:
            failures += 1
            click.echo(
                f"❌ Project {gid}: HTTP {e.response.status_code} {e.response.text}",
                err=True,
            )
        except httpx.HTTPError as e:
            failures += 1
            click.echo(f"❌ Project {gid}: {e}", err=True)

    if failures:
        raise SystemExit(1)


@cli.command("run-job")
@click.argument("job_name")
def run_job(job_name: str):
    """Run a scheduled report immediately."""
    registry = _build_registry()

    job = registry.get(job_name)
    if not job:
        click.echo(f"Job not found: {job_name}", err=True)
        click.echo("Available jobs:")
        for j in registry.list_jobs():
            click.echo(f"  - {j.name}: {j.description}")
        return

    click.echo(f"Running job: {job_name}...")
    result = run_async(registry.run_job(job_name))
    if result:
        click.echo(result)
    click.echo("✅ Job completed")


@cli.command("jobs")
def list_jobs():
    """List all scheduled jobs."""
    registry = _build_registry()

    jobs = registry.list_jobs()

    if not jobs:
        click.echo("No jobs configured.")
        return

    click.echo("Scheduled jobs:\n")
    for job in jobs:
        status = "✅" if job.enabled else "⏸️"
        click.echo(f"{status} {job.name}")
        click.echo(f"   Cron: {job.cron}")
        click.echo(f"   Description: {job.description}")
        click.echo()


def main():
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()

"""
Generate and set the CI API key of a project.

Usage:
    uv run generate-api-key <project-id>

Prints the values to store as CI secrets. The key is shown once; the
database only keeps its hash.
"""

import sys

import click

from server.database import SessionLocal, create_tables
from server.services.database_service import DatabaseService
from server.utils.api_keys import generate_api_key


@click.command()
@click.argument("project_id")
@click.option("--url", default="http://localhost:8000", show_default=True, help="URL the CI should report to")
def main(project_id: str, url: str):
    """Issue a new API key for PROJECT_ID."""
    create_tables()
    db = SessionLocal()
    try:
        db_service = DatabaseService(db)
        api_key = generate_api_key()
        project = db_service.set_project_api_key(project_id, api_key)
        if not project:
            click.echo(f"Project not found: {project_id}", err=True)
            sys.exit(1)
    finally:
        db.close()

    click.echo("API key generated successfully:")
    click.echo(f"  Project: {project.name} ({project.id})")
    click.echo("")
    click.echo("Use these values in your CI secrets:")
    click.echo(f"  BUG_TRACKER_API_KEY: {api_key}")
    click.echo(f"  BUG_TRACKER_PROJECT_ID: {project.id}")
    click.echo(f"  BUG_TRACKER_URL: {url}")


if __name__ == "__main__":
    main()

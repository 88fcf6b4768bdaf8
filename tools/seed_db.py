"""
Seed a fresh database with an admin account and a project.

Usage:
    uv run seed-db --project-name "Backend API" --repository acme/backend

The admin becomes the default reporter of CI bugs unless config/ci.yaml
names another user.
"""

import click

from server.database import SessionLocal, create_tables
from server.models import UserRole
from server.services.database_service import DatabaseService


@click.command()
@click.option("--admin-email", default="admin@example.com", show_default=True)
@click.option("--admin-name", default="Admin User", show_default=True)
@click.option("--project-name", default="Frontend App", show_default=True)
@click.option("--project-description", default=None)
@click.option("--repository", default=None, help="owner/name of the project's repository")
def main(admin_email, admin_name, project_name, project_description, repository):
    """Create the schema, an admin user and one project with an API key."""
    create_tables()
    db = SessionLocal()
    try:
        db_service = DatabaseService(db)

        admin = db_service.get_user_by_email(admin_email)
        if admin:
            click.echo(f"Admin already exists: {admin.email} ({admin.id})")
        else:
            admin = db_service.create_user(admin_email, admin_name, role=UserRole.ADMIN)
            click.echo(f"Created admin: {admin.email} ({admin.id})")

        project, api_key = db_service.create_project(
            project_name,
            description=project_description,
            repository=repository,
            with_api_key=True,
        )
    finally:
        db.close()

    click.echo(f"Created project: {project.name} ({project.id})")
    click.echo(f"API key: {api_key}")


if __name__ == "__main__":
    main()

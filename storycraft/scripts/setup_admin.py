#!/usr/bin/env python3
"""
Grant administrator access to an account.

Upgrades an existing user to the admin role, or with ``--create`` registers
a new admin account. Intended for SQL storage; the in-memory store only
lives as long as this process.
"""

import argparse
import asyncio
import sys
from typing import Optional

from rich.console import Console
from rich.table import Table

from storycraft.auth.permissions import ALL_PERMISSIONS
from storycraft.core.config import settings
from storycraft.core.constants import UserRole
from storycraft.core.logging import get_logger, setup_logging
from storycraft.core.security import hash_password, is_valid_email
from storycraft.db.database import close_db, get_session_factory, init_db
from storycraft.domain.user import User
from storycraft.repositories.user_repo import (
    InMemoryUserRepository,
    SqlAlchemyUserRepository,
    UserRepository,
)

console = Console()
logger = get_logger(__name__)

ADMIN_ROLES = [UserRole.ADMIN.value, UserRole.USER.value]
MIN_PASSWORD_LENGTH = 6
DEFAULT_ADMIN_NAME = "Admin User"


class SetupError(Exception):
    """Raised when the requested setup cannot be performed."""


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="storycraft-setup-admin",
        description="Upgrade a user to administrator, or create a new admin account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Upgrade an existing account
  storycraft-setup-admin --email owner@example.com

  # Create a new admin account
  storycraft-setup-admin --email admin@example.com --password s3cret! --create
        """,
    )
    parser.add_argument("--email", "-e", required=True, help="Email of the account")
    parser.add_argument("--password", "-p", help="Password for a new account")
    parser.add_argument("--name", "-n", default=DEFAULT_ADMIN_NAME, help="Full name for a new account")
    parser.add_argument(
        "--create",
        action="store_true",
        help="Create the account when it does not exist",
    )
    return parser.parse_args(argv)


def _split_name(name: str) -> tuple[str, str]:
    parts = name.strip().split(maxsplit=1)
    if not parts:
        parts = DEFAULT_ADMIN_NAME.split(maxsplit=1)
    return parts[0], parts[1] if len(parts) > 1 else ""


def _grant_admin(user: User) -> User:
    user.apply_roles(UserRole.ADMIN.value, list(ADMIN_ROLES), list(ALL_PERMISSIONS))
    return user


async def promote_to_admin(repository: UserRepository, email: str) -> User:
    """
    Give an existing user the admin role and every permission.

    Raises:
        SetupError: No user with that email
    """
    user = await repository.get_by_email(email.lower())
    if user is None:
        raise SetupError(f"No user found with email {email}. Use --create to create one.")

    user = await repository.save(_grant_admin(user))
    logger.info("User promoted to admin", user_uuid=user.uuid)
    return user


async def create_admin(
    repository: UserRepository,
    email: str,
    password: Optional[str],
    name: str = DEFAULT_ADMIN_NAME,
) -> User:
    """
    Register a new admin account.

    Raises:
        SetupError: Bad email or password, or the email is already taken
    """
    if not is_valid_email(email):
        raise SetupError(f"Invalid email format: {email}")
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise SetupError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if await repository.get_by_email(email.lower()):
        raise SetupError(f"A user with email {email} already exists")

    first_name, last_name = _split_name(name)
    user = User(
        email=email.lower(),
        first_name=first_name,
        last_name=last_name,
        password=hash_password(password),
    )
    user = await repository.save(_grant_admin(user))
    logger.info("Admin user created", user_uuid=user.uuid)
    return user


async def setup_admin(repository: UserRepository, args: argparse.Namespace) -> User:
    """Promote the account, creating it first when asked to."""
    existing = await repository.get_by_email(args.email.lower())
    if existing is None and args.create:
        return await create_admin(repository, args.email, args.password, args.name)
    return await promote_to_admin(repository, args.email)


def print_user(user: User) -> None:
    """Print the account's role assignments."""
    table = Table(title="Administrator")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("UUID", user.uuid)
    table.add_row("Email", user.email)
    table.add_row("Name", user.full_name)
    table.add_row("Role", user.role)
    table.add_row("Roles", ", ".join(user.roles))
    table.add_row("Permissions", str(len(user.permissions)))

    console.print(table)


async def main(argv: Optional[list[str]] = None) -> int:
    """Run the setup."""
    args = parse_args(argv)

    if settings.uses_sql_storage:
        await init_db()
        repository: UserRepository = SqlAlchemyUserRepository(get_session_factory())
    else:
        console.print(
            "[yellow]DATABASE_BACKEND is 'memory'; changes will not outlive this process.[/yellow]"
        )
        repository = InMemoryUserRepository()

    try:
        user = await setup_admin(repository, args)
    except SetupError as e:
        console.print(f"\n[bold red]{e}[/bold red]\n")
        return 1
    finally:
        if settings.uses_sql_storage:
            await close_db()

    print_user(user)
    console.print("\n[bold green]Admin access granted.[/bold green]\n")
    return 0


def run() -> None:
    """Console script entry point."""
    setup_logging()
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()

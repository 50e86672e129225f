"""
Command-line interface for gcontact_notion.

Provides CLI commands for authentication, synchronization, and status
checking of Google Contacts mirrored into a Notion database.

Usage:
    # Show help
    gcontact-notion --help

    # Authenticate both sides
    gcontact-notion auth google
    gcontact-notion auth notion --token secret_...

    # Check status
    gcontact-notion status

    # Run synchronization
    gcontact-notion sync --database-id <id>
    gcontact-notion sync --dry-run
    gcontact-notion sync --full --verbose
"""

import sys
from pathlib import Path
from typing import Any, NoReturn, Optional

import click

from gcontact_notion import __version__
from gcontact_notion.api.notion_api import NotionDatabase
from gcontact_notion.api.people_api import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PeopleAPI
from gcontact_notion.auth.google_auth import AuthenticationError, GoogleAuth
from gcontact_notion.auth.notion_auth import NOTION_TOKEN_ENV_VAR, NotionAuth
from gcontact_notion.cli.formatters import (
    format_contacts_table,
    show_detailed_changes,
    show_missing_properties,
)
from gcontact_notion.config.generator import save_config_file
from gcontact_notion.config.loader import ConfigError, ConfigLoader, build_field_mappings
from gcontact_notion.errors import ContactSyncError, CredentialsError
from gcontact_notion.storage.db import (
    DEFAULT_ACCOUNT_ID,
    MemoryTokenStore,
    SyncDatabase,
    SyncTokenStore,
)
from gcontact_notion.sync.contact import VALID_PRIMARY_POLICIES, PrimaryPolicy
from gcontact_notion.sync.converter import ContactConverter
from gcontact_notion.sync.engine import (
    GOOGLE_AUTH_HINT,
    NOTION_AUTH_HINT,
    SyncEngine,
)
from gcontact_notion.sync.fetcher import ContactFetcher
from gcontact_notion.sync.mapping import DEFAULT_JOIN_KEY_PROPERTY
from gcontact_notion.sync.upsert import RecordUpserter
from gcontact_notion.utils.logging import cleanup_old_logs, get_logger, setup_logging
from gcontact_notion.utils.paths import (
    CONFIG_FILE_NAME,
    STATE_DB_NAME,
    resolve_config_dir,
)

# Exit code for runs that finished with per-contact failures
EXIT_PARTIAL_FAILURE = 2


def get_config_file(config_dir: Path, config_file: Optional[str]) -> Path:
    """Get the configuration file path."""
    if config_file:
        return Path(config_file).expanduser()
    return config_dir / CONFIG_FILE_NAME


def open_state_database(config_dir: Path) -> SyncDatabase:
    """Open (creating if needed) the sync state database."""
    config_dir.mkdir(parents=True, exist_ok=True)
    database = SyncDatabase(str(config_dir / STATE_DB_NAME))
    database.initialize()
    return database


def api_options(config: dict[str, Any]) -> dict[str, Any]:
    """Retry settings from the configuration, as API wrapper keyword arguments."""
    options: dict[str, Any] = {}
    if "api_max_retries" in config:
        options["max_retries"] = config["api_max_retries"]
    if "api_initial_retry_delay" in config:
        options["initial_retry_delay"] = float(config["api_initial_retry_delay"])
    if "api_max_retry_delay" in config:
        options["max_retry_delay"] = float(config["api_max_retry_delay"])
    return options


def fail(message: str, hint: Optional[str] = None) -> NoReturn:
    """Print an error (and remediation hint) and exit with status 1."""
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    if hint:
        click.echo(f"Run: {hint}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="gcontact-notion")
@click.option(
    "--verbose", "-v", is_flag=True, help="Enable verbose output with detailed logging."
)
@click.option(
    "--config-dir",
    "-c",
    type=click.Path(exists=False, file_okay=False, dir_okay=True),
    envvar="GCONTACT_NOTION_CONFIG_DIR",
    help="Configuration directory path (default: ~/.gcontact-notion).",
)
@click.option(
    "--config-file",
    "-f",
    type=click.Path(exists=False, file_okay=True, dir_okay=False),
    envvar="GCONTACT_NOTION_CONFIG_FILE",
    help="Configuration file path (default: <config-dir>/config.yaml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config_dir: Optional[str],
    config_file: Optional[str],
) -> None:
    """
    Google Contacts to Notion Sync.

    Mirrors the contacts of a Google account into a Notion database,
    one page per contact, keeping pages up to date on every run and
    archiving the pages of deleted contacts.
    """
    ctx.ensure_object(dict)

    resolved_config_dir = resolve_config_dir(config_dir)
    resolved_config_file = get_config_file(resolved_config_dir, config_file)

    ctx.obj["config_dir"] = resolved_config_dir
    ctx.obj["config_file"] = resolved_config_file

    # A broken config file only warns, so auth and init-config keep working
    config: dict[str, Any] = {}
    try:
        loader = ConfigLoader(config_dir=resolved_config_dir)
        config = loader.load_from_file(resolved_config_file)
        if config:
            loader.validate(config)
    except ConfigError as e:
        click.echo(
            click.style(f"Warning: Configuration error: {e}", fg="yellow"), err=True
        )
        config = {}

    ctx.obj["config"] = config

    effective_verbose = verbose or config.get("verbose", False)
    ctx.obj["verbose"] = effective_verbose

    log_dir = Path(config["log_dir"]).expanduser() if config.get("log_dir") else None
    if log_dir is None:
        log_dir = resolved_config_dir / "logs"

    setup_logging(verbose=effective_verbose, log_dir=log_dir, enable_file_logging=True)

    log_retention = config.get("log_retention_count", 10)
    if log_retention > 0:
        cleanup_old_logs(log_dir=log_dir, keep_count=log_retention)


# =============================================================================
# Auth Commands
# =============================================================================


@cli.group("auth")
def auth_group() -> None:
    """
    Authenticate with Google or Notion.

    Credentials are stored in the configuration directory with
    owner-only permissions.
    """


@auth_group.command("google")
@click.option(
    "--force",
    is_flag=True,
    help="Force re-authentication even if already authenticated.",
)
@click.pass_context
def auth_google_command(ctx: click.Context, force: bool) -> None:
    """
    Authenticate the Google account.

    Opens a browser window to complete the OAuth flow and stores
    the credentials for future use.

    Examples:

        gcontact-notion auth google

        gcontact-notion auth google --force
    """
    logger = get_logger(__name__)
    config_dir = ctx.obj["config_dir"]

    click.echo("Authenticating Google account...")

    try:
        auth = GoogleAuth(config_dir=config_dir)

        if not force and auth.is_authenticated():
            click.echo(
                click.style("Google account is already authenticated.", fg="green")
            )
            click.echo("Use --force to re-authenticate.")
            return

        auth.authenticate(force_reauth=force)
        click.echo(click.style("Successfully authenticated Google account!", fg="green"))
        logger.info("Google authentication completed")

    except FileNotFoundError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        click.echo("\nTo get started:", err=True)
        click.echo("1. Go to https://console.cloud.google.com/", err=True)
        click.echo("2. Create a project and enable the People API", err=True)
        click.echo("3. Create OAuth 2.0 credentials (Desktop application)", err=True)
        click.echo(
            f"4. Download and save as: {config_dir / 'credentials.json'}", err=True
        )
        sys.exit(1)

    except AuthenticationError as e:
        logger.error(f"Authentication failed: {e}")
        click.echo(click.style(f"Authentication failed: {e}", fg="red"), err=True)
        sys.exit(1)


@auth_group.command("notion")
@click.option(
    "--token",
    prompt="Notion integration token",
    hide_input=True,
    envvar=NOTION_TOKEN_ENV_VAR,
    help=f"Integration token (also read from ${NOTION_TOKEN_ENV_VAR}).",
)
@click.pass_context
def auth_notion_command(ctx: click.Context, token: str) -> None:
    """
    Store a Notion integration token.

    Create an internal integration at https://www.notion.so/my-integrations
    and share the target database with it.

    Example:

        gcontact-notion auth notion --token secret_...
    """
    logger = get_logger(__name__)

    try:
        NotionAuth(config_dir=ctx.obj["config_dir"]).save_token(token)
    except ValueError as e:
        fail(str(e))
    except OSError as e:
        logger.error(f"Could not store Notion token: {e}")
        fail(f"Could not store Notion token: {e}")

    click.echo(click.style("Notion token saved.", fg="green"))


# =============================================================================
# Status Command
# =============================================================================


@cli.command("status")
@click.pass_context
def status_command(ctx: click.Context) -> None:
    """
    Show authentication and sync status.

    Example:

        gcontact-notion status
    """
    config_dir: Path = ctx.obj["config_dir"]
    config = ctx.obj["config"]

    google_status = GoogleAuth(config_dir=config_dir).get_auth_status()
    notion_status = NotionAuth(config_dir=config_dir).get_auth_status()

    click.echo("=== Google Contacts to Notion Status ===\n")
    click.echo(f"Configuration directory: {config_dir}")
    creds_status = (
        "Found"
        if google_status["credentials_exist"]
        else click.style("Not found", fg="red")
    )
    click.echo(f"OAuth client credentials: {creds_status}")
    click.echo()

    if google_status["authenticated"]:
        google_text = click.style("Authenticated", fg="green")
    elif google_status["token_exists"]:
        google_text = click.style("Token expired or invalid", fg="yellow")
    else:
        google_text = click.style("Not authenticated", fg="red")
    click.echo(f"Google: {google_text}")

    if notion_status["authenticated"]:
        notion_text = click.style(f"Token set ({notion_status['source']})", fg="green")
    else:
        notion_text = click.style("Not authenticated", fg="red")
    click.echo(f"Notion: {notion_text}")

    click.echo(f"Database: {config.get('database_id') or '(not configured)'}")
    click.echo()

    db_path = config_dir / STATE_DB_NAME
    if db_path.exists():
        database = SyncDatabase(str(db_path))
        database.initialize()

        click.echo("=== Sync Status ===\n")
        state = database.get_sync_state(DEFAULT_ACCOUNT_ID)
        if state:
            has_token = bool(state.get("sync_token"))
            click.echo(f"Last sync: {state.get('last_sync_at') or 'Never'}")
            click.echo(f"Sync token: {'Yes' if has_token else 'No'}")
        else:
            click.echo("Never synced")

        last_run = database.get_last_sync_run(DEFAULT_ACCOUNT_ID)
        if last_run:
            sync_type = "full" if last_run["is_full_sync"] else "incremental"
            click.echo(
                f"Last run: {last_run['finished_at']} ({sync_type}), "
                f"upserted {last_run['upserted']}, archived {last_run['archived']}, "
                f"failed {last_run['failed']}"
            )
    else:
        click.echo("Sync database: Not initialized (no syncs performed yet)")

    click.echo()

    if not google_status["authenticated"]:
        click.echo(click.style("Google authentication required.", fg="yellow"))
        click.echo(f"  Run: {GOOGLE_AUTH_HINT}")
    elif not notion_status["authenticated"]:
        click.echo(click.style("Notion authentication required.", fg="yellow"))
        click.echo(f"  Run: {NOTION_AUTH_HINT}")
    else:
        click.echo(click.style("Ready to sync!", fg="green"))


# =============================================================================
# Contacts Commands
# =============================================================================


@cli.group("contacts")
def contacts_group() -> None:
    """Inspect the Google contacts that would be synced."""


@contacts_group.command("list")
@click.option(
    "--limit",
    "-l",
    type=click.IntRange(1, MAX_PAGE_SIZE),
    default=10,
    show_default=True,
    help="Maximum number of contacts to list.",
)
@click.pass_context
def contacts_list_command(ctx: click.Context, limit: int) -> None:
    """
    List Google contacts.

    Example:

        gcontact-notion contacts list --limit 25
    """
    logger = get_logger(__name__)
    config = ctx.obj["config"]

    creds = GoogleAuth(config_dir=ctx.obj["config_dir"]).get_credentials()
    if creds is None:
        fail("Google account is not authenticated.", GOOGLE_AUTH_HINT)

    try:
        contacts = PeopleAPI(creds, **api_options(config)).list_contacts(limit)
    except ContactSyncError as e:
        logger.error(f"Listing contacts failed: {e}")
        fail(str(e))

    click.echo(format_contacts_table(contacts))


# =============================================================================
# Init-Config Command
# =============================================================================


@cli.command("init-config")
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite existing configuration file if it exists.",
)
@click.pass_context
def init_config_command(ctx: click.Context, force: bool) -> None:
    """
    Generate a default configuration file.

    Examples:

        gcontact-notion init-config

        gcontact-notion init-config --force
    """
    config_file = ctx.obj["config_file"]

    click.echo(f"Creating configuration file: {config_file}")

    success, error = save_config_file(config_file, overwrite=force)

    if not success:
        fail(error or "Could not create configuration file")

    click.echo(click.style("Configuration file created successfully!", fg="green"))
    click.echo("\nNext steps:")
    click.echo("1. Set database_id to the ID of your Notion contacts database")
    click.echo("2. Adjust field_mappings to match its property names")
    click.echo("3. Run 'gcontact-notion sync'")


# =============================================================================
# Sync Command
# =============================================================================


@cli.command("sync")
@click.option("--database-id", "-d", help="Target Notion database ID.")
@click.option("--full", is_flag=True, help="Force full sync (ignore the sync token).")
@click.option(
    "--page-size",
    type=click.IntRange(1, MAX_PAGE_SIZE),
    help=f"Contacts per Google API page (default: {DEFAULT_PAGE_SIZE}).",
)
@click.option(
    "--dry-run", "-n", is_flag=True, help="Preview changes without writing to Notion."
)
@click.option(
    "--primary-policy",
    type=click.Choice(sorted(VALID_PRIMARY_POLICIES), case_sensitive=False),
    help="Fallback when no entry is flagged primary (default: strict).",
)
@click.option(
    "--ensure-schema",
    is_flag=True,
    help="Add mapped properties missing from the database first.",
)
@click.pass_context
def sync_command(
    ctx: click.Context,
    database_id: Optional[str],
    full: bool,
    page_size: Optional[int],
    dry_run: bool,
    primary_policy: Optional[str],
    ensure_schema: bool,
) -> None:
    """
    Synchronize Google contacts into the Notion database.

    Runs an incremental sync when a sync token is stored, and a full
    sync otherwise. Changed contacts are created or updated; pages of
    deleted contacts are archived.

    Exit status is 0 on success, 1 when the run aborted, and 2 when it
    finished but some contacts failed.

    Examples:

        gcontact-notion sync --database-id 0123abcd...

        gcontact-notion sync --dry-run

        gcontact-notion sync --full --ensure-schema
    """
    logger = get_logger(__name__)
    config_dir: Path = ctx.obj["config_dir"]
    config = ctx.obj["config"]
    verbose = ctx.obj["verbose"]

    effective_database_id = database_id or config.get("database_id")
    if not effective_database_id:
        fail("No Notion database configured. Use --database-id or set database_id.")

    effective_policy = PrimaryPolicy(
        (primary_policy or config.get("primary_policy", "strict")).lower()
    )
    effective_page_size = page_size or config.get("page_size", DEFAULT_PAGE_SIZE)
    effective_ensure_schema = ensure_schema or config.get("ensure_schema", False)

    try:
        mappings = build_field_mappings(config)
    except ConfigError as e:
        fail(str(e))

    google_credentials = GoogleAuth(config_dir=config_dir).get_credentials()
    notion_token = NotionAuth(config_dir=config_dir).get_token()

    try:
        database = open_state_database(config_dir)
        token_store: Any = SyncTokenStore(database)
        if dry_run:
            # Dry runs must not advance the persisted token
            token_store = MemoryTokenStore(token_store.load())

        options = api_options(config)
        fetcher = ContactFetcher(
            PeopleAPI(google_credentials, page_size=effective_page_size, **options),
            token_store,
            page_size=effective_page_size,
            include_deleted=config.get("include_deleted", False),
        )
        converter = ContactConverter(
            join_key_property=config.get("join_key_property", DEFAULT_JOIN_KEY_PROPERTY),
            policy=effective_policy,
        )
        upserter = RecordUpserter(
            NotionDatabase.from_token(notion_token, effective_database_id, **options),
            converter,
        )
        engine = SyncEngine(
            fetcher,
            upserter,
            mappings,
            google_credentials=google_credentials,
            notion_token=notion_token,
            database=database,
        )

        if verbose:
            click.echo("Sync configuration:")
            click.echo(f"  Database: {effective_database_id}")
            click.echo(f"  Primary policy: {effective_policy.value}")
            click.echo(f"  Page size: {effective_page_size}")
            click.echo(f"  Full sync: {full}")
            click.echo(f"  Dry run: {dry_run}")
            click.echo()

        mode = "Analyzing" if dry_run else "Synchronizing"
        click.echo(f"{mode} contacts...")

        result = engine.run(
            full=full,
            page_size=effective_page_size if full else None,
            dry_run=dry_run,
            ensure_schema=effective_ensure_schema,
        )

    except CredentialsError as e:
        logger.error(f"Sync aborted: {e}")
        fail(str(e), e.hint)
    except ContactSyncError as e:
        logger.error(f"Sync failed: {e}")
        fail(f"Sync failed: {e}")

    click.echo("\n" + "=" * 50)
    click.echo(result.summary())
    click.echo("=" * 50)

    if dry_run:
        click.echo(click.style("\nDry run complete. No changes were made.", fg="yellow"))
        if verbose:
            show_detailed_changes(result)

    if result.has_failures:
        click.echo(
            click.style(
                f"\nWarning: {result.stats.failed} contact(s) failed.", fg="yellow"
            ),
            err=True,
        )
        sys.exit(EXIT_PARTIAL_FAILURE)

    if not dry_run:
        click.echo(click.style("\nSync completed successfully!", fg="green"))


# =============================================================================
# Schema Command
# =============================================================================


@cli.command("schema")
@click.option("--database-id", "-d", help="Target Notion database ID.")
@click.option("--apply", is_flag=True, help="Add the missing properties.")
@click.pass_context
def schema_command(ctx: click.Context, database_id: Optional[str], apply: bool) -> None:
    """
    Compare the database schema with the field mappings.

    Lists mapped properties missing from the database and, with
    --apply, adds them. Existing properties are never changed.

    Example:

        gcontact-notion schema --apply
    """
    logger = get_logger(__name__)
    config = ctx.obj["config"]

    effective_database_id = database_id or config.get("database_id")
    if not effective_database_id:
        fail("No Notion database configured. Use --database-id or set database_id.")

    notion_token = NotionAuth(config_dir=ctx.obj["config_dir"]).get_token()
    if not notion_token:
        fail("Notion authentication is required.", NOTION_AUTH_HINT)

    try:
        mappings = build_field_mappings(config)
        upserter = RecordUpserter(
            NotionDatabase.from_token(
                notion_token, effective_database_id, **api_options(config)
            ),
            ContactConverter(
                join_key_property=config.get(
                    "join_key_property", DEFAULT_JOIN_KEY_PROPERTY
                )
            ),
        )
        missing = upserter.missing_properties(mappings)
        show_missing_properties(missing)

        if missing and apply:
            upserter.database.add_properties(missing)
            click.echo(click.style(f"Added {len(missing)} property(ies).", fg="green"))
    except ConfigError as e:
        fail(str(e))
    except ContactSyncError as e:
        logger.error(f"Schema check failed: {e}")
        fail(str(e))


# =============================================================================
# Reset Command
# =============================================================================


@cli.command("reset")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.option("--all", "clear_all", is_flag=True, help="Also clear run history.")
@click.pass_context
def reset_command(ctx: click.Context, yes: bool, clear_all: bool) -> None:
    """
    Reset sync state (forces full sync on next run).

    Clears the stored sync token. Notion pages are not touched.

    Example:

        gcontact-notion reset
    """
    logger = get_logger(__name__)
    db_path = ctx.obj["config_dir"] / STATE_DB_NAME

    if not db_path.exists():
        click.echo("No sync database found. Nothing to reset.")
        return

    if not yes:
        click.confirm(
            "This will clear the sync token and force a full sync on next run.\n"
            "Continue?",
            abort=True,
        )

    database = SyncDatabase(str(db_path))
    database.initialize()
    if clear_all:
        database.clear_all_state()
    else:
        database.clear_sync_token(DEFAULT_ACCOUNT_ID)

    click.echo(click.style("Sync state has been reset.", fg="green"))
    click.echo("Next sync will read every contact.")
    logger.info("Sync state reset completed")

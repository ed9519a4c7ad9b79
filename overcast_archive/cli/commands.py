"""CLI commands for archiving Overcast.

Provides commands for:
- Authenticating with Overcast and caching the session
- Archiving feeds and episode history to a SQLite database
"""

import argparse
import getpass
import logging
import sys

from ..archive.sync import ArchiveSyncService
from ..config import Config
from ..db.factory import create_repository
from ..errors import CredentialsError, OvercastArchiveError
from ..overcast.client import OvercastClient
from ..overcast.credentials import Credentials, load_credentials, save_credentials
from ..overcast.opml_parser import OvercastOPMLParser

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _auth_file(args, config: Config) -> str:
    return args.auth_file or config.OVERCAST_AUTH_FILE


def resolve_credentials(args, config: Config) -> Credentials:
    """
    Pick the credentials an `archive` run should use.

    Credentials given with --username and --password win; otherwise the auth file is read. A cached session token is preferred over a stored password.

    Parameters:
        args: CLI arguments with `username`, `password` and `auth_file` attributes.
        config (Config): Application configuration providing the default auth file.

    Returns:
        Credentials: Credentials holding either a session token or a username/password pair.

    Raises:
        CredentialsError: If neither the flags nor the auth file provide usable credentials.
    """
    if args.username and args.password:
        return Credentials(username=args.username, password=args.password)

    stored = load_credentials(_auth_file(args, config))
    if stored is not None and (stored.has_session_token or stored.has_login):
        return stored

    raise CredentialsError(
        "No credentials provided. Run the `auth` subcommand first, "
        "or provide credentials with --username and --password."
    )


def open_client(credentials: Credentials, config: Config) -> OvercastClient:
    """Return a client ready to fetch, logging in only when there is no cached session."""
    if credentials.has_session_token:
        logger.info("Using saved Overcast session")
        return OvercastClient.from_config(config, session_token=credentials.session_token)

    client = OvercastClient.from_config(config)
    try:
        client.authenticate(credentials.username, credentials.password)
    except OvercastArchiveError:
        client.close()
        raise
    return client


def auth(args, config: Config):
    """
    Log in to Overcast and save the session token to the auth file.

    Username and password come from the global flags when given and are prompted for otherwise (the password prompt does not echo). The auth file is written only after Overcast accepted the login.

    Parameters:
        args: CLI arguments with `username`, `password` and `auth_file` attributes.
        config (Config): Application configuration.

    Raises:
        CredentialsError: If no username or password was entered, or the auth file cannot be written.
        AuthenticationError: If Overcast rejects the login.
        NetworkError: If Overcast cannot be reached.
    """
    username = args.username or input("Overcast username: ").strip()
    password = args.password or getpass.getpass("Overcast password: ")
    if not username or not password:
        raise CredentialsError("Both an Overcast username and password are required.")

    client = OvercastClient.from_config(config)
    try:
        token = client.authenticate(username, password)
    finally:
        client.close()

    auth_file = _auth_file(args, config)
    save_credentials(auth_file, Credentials(username=username, session_token=token))

    print("Authenticated successfully.")
    print(f"  Session saved to: {auth_file}")


def archive(args, config: Config):
    """
    Fetch the Overcast export and upsert it into the SQLite database at args.db_path.

    Runs authenticate, fetch, parse and write in order; the database is only opened once the export parsed cleanly, and all writes are committed in one transaction. Prints a summary of the sync and the database totals.

    Parameters:
        args: CLI arguments with `db_path`, `username`, `password` and `auth_file` attributes.
        config (Config): Application configuration providing Overcast and database settings.

    Raises:
        OvercastArchiveError: On any credentials, authentication, network, parse or storage failure.
    """
    logger.info("[1/3] Authenticating with Overcast...")
    credentials = resolve_credentials(args, config)
    client = open_client(credentials, config)

    try:
        logger.info("[2/3] Fetching podcasts...")
        opml = client.fetch_export()
    finally:
        client.close()

    export = OvercastOPMLParser().parse_string(opml)
    logger.info(
        f"Fetched {len(export.feeds)} feeds with a total of {export.episode_count} episodes."
    )

    logger.info("[3/3] Writing podcasts to sqlite db...")
    repository = create_repository(args.db_path, echo=config.DB_ECHO)
    try:
        result = ArchiveSyncService(repository).sync(export.feeds)
        stats = repository.get_stats()
    finally:
        repository.close()

    print(f"\nArchive complete: {args.db_path}")
    print(
        f"  Feeds:    {result.feeds_added} added, {result.feeds_updated} updated, "
        f"{result.feeds_unchanged} unchanged"
    )
    print(
        f"  Episodes: {result.episodes_added} added, {result.episodes_updated} updated, "
        f"{result.episodes_unchanged} unchanged"
    )
    print(
        f"  Database: {stats['feeds']} feeds ({stats['subscribed_feeds']} subscribed), "
        f"{stats['episodes']} episodes ({stats['played_episodes']} played)"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="overcast-archive",
        description="Save Overcast feeds and episode history to SQLite",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("-u", "--username", help="Overcast username")
    parser.add_argument("-p", "--password", help="Overcast password")
    parser.add_argument(
        "-a",
        "--auth-file",
        default=None,
        help="Storage location for Overcast credentials (default: auth.json)",
    )
    parser.add_argument(
        "--env-file",
        help="Path to .env file",
        default=None,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # auth command
    subparsers.add_parser(
        "auth",
        help="Authenticate with Overcast",
    )

    # archive command
    archive_parser = subparsers.add_parser(
        "archive",
        help="Save Overcast feeds/episodes to sqlite",
    )
    archive_parser.add_argument("db_path", help="The sqlite database path to store to")

    return parser


def main():
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Load configuration
    try:
        config = Config(env_file=args.env_file)
    except ValueError as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    logging.getLogger().setLevel(logging.DEBUG if args.verbose else config.LOG_LEVEL)

    # Route to appropriate command
    commands = {
        "auth": auth,
        "archive": archive,
    }

    command_func = commands.get(args.command)
    if command_func is None:
        parser.print_help()
        sys.exit(1)

    try:
        command_func(args, config)
    except OvercastArchiveError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()

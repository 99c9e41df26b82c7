"""Main CLI implementation."""

from pathlib import Path
from typing import List, Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from ..audit import EventType, audit_event, setup_logging
from ..config import LOG_LEVELS, MAX_PASSWORD_LENGTH, Settings
from ..crypto import (
    DecryptionFailedError,
    EncryptionError,
    KeyDeriver,
    SecureBuffer,
    generate_salt,
    random_string,
)
from ..session import VaultSession, read_secret_line, tokenize
from ..storage import FormNotFoundError, VaultFile, VaultStoreError

console = Console()

UNRECOGNIZED_MSG = "Unrecognized command, enter q[uit] to quit"


def print_table(title: str, rows: list, columns: list) -> None:
    """Print data in a formatted table.

    Args:
        title: Table title
        rows: List of row dictionaries
        columns: List of (key, header) tuples defining columns
    """
    table = Table(title=title)
    for _, header in columns:
        table.add_column(header, style="cyan", overflow="fold")

    for row in rows:
        table.add_row(*[str(row.get(key, "")) for key, _ in columns])

    console.print(table)


def as_text(buf: SecureBuffer) -> str:
    return bytes(buf.read()).decode("utf-8", errors="replace")


def as_secret(value: str) -> SecureBuffer:
    return SecureBuffer.from_bytes(bytearray(value.encode("utf-8")))


def prompt_password(confirm: bool = False) -> SecureBuffer:
    """Prompt for the master password with hidden input."""
    value = click.prompt(
        "Master password", hide_input=True, confirmation_prompt=confirm
    )
    return as_secret(value)


def vault_file_for(settings: Settings) -> VaultFile:
    vault_file = VaultFile(settings.vault_path)
    if not vault_file.exists():
        raise click.ClickException(
            f"No vault at {settings.vault_path}; run 'formvault init' first."
        )
    return vault_file


def open_session(settings: Settings, vault_file: VaultFile) -> VaultSession:
    """Read the vault, prompt for the password and unlock it.

    An empty vault cannot prove the password, so the prompt asks for
    confirmation in that case.
    """
    try:
        salt, vault = vault_file.read()
    except VaultStoreError as e:
        audit_event(event_type=EventType.ERROR_VAULT, success=False, error=e)
        raise click.ClickException(f"Unable to read vault: {e}")

    deriver = KeyDeriver(iterations=settings.kdf_iterations)
    with prompt_password(confirm=vault.is_empty()) as password:
        session = VaultSession.unlock(password, salt, vault, deriver=deriver)

    try:
        session.verify()
    except DecryptionFailedError as e:
        session.lock()
        audit_event(event_type=EventType.ERROR_UNLOCK, success=False, error=e)
        raise click.ClickException("Unable to unlock vault") from None

    audit_event(
        event_type=EventType.VAULT_UNLOCK, success=True, details={"forms": len(vault)}
    )
    return session


def parse_field(item: str) -> tuple:
    try:
        prompt, answer = item.split("=", 1)
    except ValueError:
        raise click.BadParameter(
            f"Invalid field format: {item}. Use prompt=answer format."
        )
    return as_secret(prompt), as_secret(answer)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Set logging level",
)
@click.option(
    "--vault",
    "vault_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Vault file to use",
)
@click.version_option(package_name="formvault")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str], vault_path: Optional[Path]) -> None:
    """formvault: local password vault.

    Form names, prompts and answers are encrypted under a key derived from
    your master password.
    """
    overrides = {}
    if log_level:
        overrides["log_level"] = log_level
    if vault_path:
        overrides["vault_path"] = vault_path
    try:
        settings = Settings(**overrides)
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    setup_logging(log_level=settings.log_level, base_dir=settings.log_dir)
    ctx.obj = settings


@cli.command()
@click.pass_obj
def init(settings: Settings) -> None:
    """Create a new, empty vault."""
    vault_file = VaultFile(settings.vault_path)
    try:
        vault_file.create(salt=generate_salt(settings.salt_length))
    except (VaultStoreError, EncryptionError, OSError) as e:
        audit_event(event_type=EventType.VAULT_INIT, success=False, error=e)
        raise click.ClickException(str(e))

    audit_event(
        event_type=EventType.VAULT_INIT,
        success=True,
        details={"path": str(settings.vault_path)},
    )
    click.echo(f"Created vault at {settings.vault_path}")


@cli.command("list")
@click.pass_obj
def list_forms(settings: Settings) -> None:
    """List stored form names."""
    with open_session(settings, vault_file_for(settings)) as session:
        show_names(session)
    audit_event(event_type=EventType.FORM_LIST, success=True)


@cli.command()
@click.argument("name")
@click.pass_obj
def show(settings: Settings, name: str) -> None:
    """Show the fields of form NAME."""
    with open_session(settings, vault_file_for(settings)) as session:
        with as_secret(name) as secret_name:
            show_form(session, secret_name, name)
    audit_event(event_type=EventType.FORM_READ, success=True)


@cli.command()
@click.argument("name")
@click.option(
    "--field",
    "fields",
    multiple=True,
    help="Field in prompt=answer format (can be specified multiple times)",
)
@click.option(
    "--generate",
    "generated",
    multiple=True,
    help="Prompt whose answer is a new random password",
)
@click.option(
    "--length",
    type=click.IntRange(min=1, max=MAX_PASSWORD_LENGTH),
    default=None,
    help="Length of generated passwords",
)
@click.pass_obj
def save(
    settings: Settings,
    name: str,
    fields: tuple,
    generated: tuple,
    length: Optional[int],
) -> None:
    """Save form NAME, replacing any form with the same name."""
    form = [parse_field(item) for item in fields]
    vault_file = vault_file_for(settings)
    with open_session(settings, vault_file) as session:
        for prompt in generated:
            password = random_string(
                length or settings.password_length, settings.password_alphabet
            )
            click.echo(f"{prompt}: {as_text(password)}")
            form.append((as_secret(prompt), password))

        try:
            with as_secret(name) as secret_name:
                replaced = session.save_form(secret_name, form)
            vault_file.write(session.salt, session.vault)
        except (EncryptionError, VaultStoreError, ValueError, OSError) as e:
            audit_event(event_type=EventType.FORM_SAVE, success=False, error=e)
            raise click.ClickException(f"Unable to save form: {e}")
        finally:
            for prompt, answer in form:
                prompt.wipe()
                answer.wipe()

    audit_event(
        event_type=EventType.FORM_SAVE,
        success=True,
        details={"fields": len(form), "replaced": replaced},
    )
    click.echo(f"{'Updated' if replaced else 'Saved'} form {name}")


@cli.command()
@click.argument("name")
@click.pass_obj
def remove(settings: Settings, name: str) -> None:
    """Delete form NAME."""
    vault_file = vault_file_for(settings)
    with open_session(settings, vault_file) as session:
        with as_secret(name) as secret_name:
            remove_form(session, vault_file, secret_name, name)
    audit_event(event_type=EventType.FORM_DELETE, success=True)


@cli.command()
@click.option(
    "--length",
    type=click.IntRange(min=1, max=MAX_PASSWORD_LENGTH),
    default=None,
    help="Password length",
)
@click.option("--alphabet", default=None, help="Characters to draw from")
@click.pass_obj
def generate(settings: Settings, length: Optional[int], alphabet: Optional[str]) -> None:
    """Print a new random password."""
    try:
        password = random_string(
            length or settings.password_length,
            alphabet or settings.password_alphabet,
        )
    except (ValueError, UnicodeEncodeError) as e:
        raise click.BadParameter(str(e), param_hint="--alphabet")
    except EncryptionError as e:
        audit_event(event_type=EventType.PASSWORD_GENERATE, success=False, error=e)
        raise click.ClickException(str(e))

    with password:
        click.echo(as_text(password))
    audit_event(
        event_type=EventType.PASSWORD_GENERATE,
        success=True,
        details={"length": len(password)},
    )


@cli.command()
@click.pass_obj
def shell(settings: Settings) -> None:
    """Interactive session.

    Commands: list, show NAME, generate [LENGTH], remove NAME, q[uit].
    """
    vault_file = vault_file_for(settings)
    stdin = click.get_text_stream("stdin")
    with open_session(settings, vault_file) as session:
        while True:
            click.echo("> ", nl=False)
            try:
                line = read_secret_line(stdin)
            except ValueError as e:
                click.echo(str(e), err=True)
                continue
            if line is None:
                break
            with line:
                tokens = tokenize(line)
                try:
                    if interpret(settings, session, vault_file, tokens):
                        break
                finally:
                    for token in tokens:
                        token.wipe()
    audit_event(event_type=EventType.VAULT_LOCK, success=True)
    click.echo("Quitting, locking vault")


def interpret(
    settings: Settings,
    session: VaultSession,
    vault_file: VaultFile,
    tokens: List[SecureBuffer],
) -> bool:
    """Run one shell command. Returns whether the shell should quit."""
    if not tokens:
        return False
    command, args = tokens[0], tokens[1:]
    try:
        if command == b"q" or command == b"quit":
            return True
        if command == b"list":
            show_names(session)
        elif command == b"show" and args:
            with join_tokens(args) as name:
                show_form(session, name, as_text(name))
        elif command == b"remove" and args:
            with join_tokens(args) as name:
                remove_form(session, vault_file, name, as_text(name))
        elif command == b"generate" and len(args) <= 1:
            length = int(as_text(args[0])) if args else settings.password_length
            if not 0 < length <= MAX_PASSWORD_LENGTH:
                raise click.ClickException(
                    f"Length must be between 1 and {MAX_PASSWORD_LENGTH}"
                )
            with random_string(length, settings.password_alphabet) as password:
                click.echo(as_text(password))
        else:
            click.echo(UNRECOGNIZED_MSG)
    except click.ClickException as e:
        click.echo(f"Error: {e.message}", err=True)
    except ValueError:
        click.echo(UNRECOGNIZED_MSG)
    return False


def join_tokens(tokens: List[SecureBuffer]) -> SecureBuffer:
    """Rejoin tokens with single spaces, e.g. a form name containing spaces."""
    total = sum(len(token) for token in tokens) + len(tokens) - 1
    joined = SecureBuffer.allocate_zeroed(total)
    out = joined.write()
    offset = 0
    for i, token in enumerate(tokens):
        if i:
            out[offset] = 0x20
            offset += 1
        out[offset:offset + len(token)] = token.read()
        offset += len(token)
    return joined


def show_names(session: VaultSession) -> None:
    names = session.names()
    try:
        rows = sorted(({"name": as_text(name)} for name in names), key=lambda r: r["name"])
        print_table("Forms", rows, [("name", "Name")])
    finally:
        for name in names:
            name.wipe()


def show_form(session: VaultSession, name: SecureBuffer, label: str) -> None:
    try:
        fields = session.open_form(name)
    except FormNotFoundError:
        raise click.ClickException(f"Form not found: {label}")
    except EncryptionError as e:
        audit_event(event_type=EventType.ERROR_VAULT, success=False, error=e)
        raise click.ClickException(f"Unable to decrypt form {label}") from None
    try:
        rows = [
            {"prompt": as_text(prompt), "answer": as_text(answer)}
            for prompt, answer in fields
        ]
        print_table(label, rows, [("prompt", "Prompt"), ("answer", "Answer")])
    finally:
        for prompt, answer in fields:
            prompt.wipe()
            answer.wipe()


def remove_form(
    session: VaultSession, vault_file: VaultFile, name: SecureBuffer, label: str
) -> None:
    if not session.remove_form(name):
        raise click.ClickException(f"Form not found: {label}")
    try:
        vault_file.write(session.salt, session.vault)
    except OSError as e:
        raise click.ClickException(f"Unable to write vault: {e}")
    click.echo(f"Removed form {label}")


def main() -> None:
    """CLI entry point."""
    cli()

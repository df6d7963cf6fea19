"""CLI entry point for the proof registry.

State lives in a JSONL event log (``event_log`` setting); every command
replays it, so successive invocations see each other's claims.  Each
mutating command is applied in its own block.
"""

from __future__ import annotations

import asyncio

import click

from .core.config import Settings, load_settings
from .core.errors import ConfigError
from .core.ids import fingerprint_file, proof_from_hex, proof_to_hex
from .host.calls import CreateClaim, RevokeClaim, TransferClaim
from .host.origin import Origin
from .host.runtime import DispatchResult, Registry, open_registry
from .infrastructure.event_store import JsonFileEventStore
from .observability.logger import get_logger, new_trace_id, setup_logging

log = get_logger(__name__)


@click.group()
@click.option("--config", default=None, help="TOML config file path")
@click.option("--event-log", default=None, help="Event log override")
@click.pass_context
def main(ctx: click.Context, config: str | None, event_log: str | None) -> None:
    """Proof-of-existence claim registry."""
    overrides: dict = {}
    if event_log:
        overrides["event_log"] = event_log
    try:
        settings = load_settings(config_path=config, overrides=overrides)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    setup_logging(
        settings.observability.log_level,
        settings.observability.log_format,
    )
    new_trace_id()
    ctx.obj = settings


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _resolve_proof(proof: str | None, file: str | None) -> bytes:
    if (proof is None) == (file is None):
        raise click.UsageError("Give exactly one of PROOF or --file.")
    if file is not None:
        return fingerprint_file(file)
    try:
        return proof_from_hex(proof)
    except ValueError as exc:
        raise click.BadParameter(f"not valid hex: {proof!r}", param_hint="PROOF") from exc


async def _open(settings: Settings) -> Registry:
    return await open_registry(settings, JsonFileEventStore(settings.event_log))


def _submit(settings: Settings, origin: Origin, call) -> DispatchResult:
    async def _run() -> DispatchResult:
        registry = await _open(settings)
        return await registry.submit(origin, call)

    return asyncio.run(_run())


def _report(ctx: click.Context, result: DispatchResult) -> None:
    if result.ok:
        click.echo(f"{result.event} at block {result.block}")
        return
    log.info("call_failed", error=result.error, block=result.block)
    click.echo(f"error: {result.error}", err=True)
    ctx.exit(1)


# ---------------------------------------------------------------------------
# Mutating commands
# ---------------------------------------------------------------------------

@main.command()
@click.argument("proof", required=False)
@click.option("--file", "file", default=None, type=click.Path(exists=True, dir_okay=False), help="Fingerprint this file instead")
@click.option("--as", "sender", required=True, help="Signing account")
@click.pass_context
def create(ctx: click.Context, proof: str | None, file: str | None, sender: str) -> None:
    """Claim PROOF for the signing account."""
    call = CreateClaim(proof=_resolve_proof(proof, file))
    _report(ctx, _submit(ctx.obj, Origin.signed(sender), call))


@main.command()
@click.argument("proof", required=False)
@click.option("--file", "file", default=None, type=click.Path(exists=True, dir_okay=False), help="Fingerprint this file instead")
@click.option("--as", "sender", required=True, help="Signing account")
@click.option("--to", "dest", required=True, help="New owner")
@click.pass_context
def transfer(
    ctx: click.Context, proof: str | None, file: str | None, sender: str, dest: str,
) -> None:
    """Hand PROOF to another account."""
    call = TransferClaim(proof=_resolve_proof(proof, file), dest=dest)
    _report(ctx, _submit(ctx.obj, Origin.signed(sender), call))


@main.command()
@click.argument("proof", required=False)
@click.option("--file", "file", default=None, type=click.Path(exists=True, dir_okay=False), help="Fingerprint this file instead")
@click.option("--as", "sender", required=True, help="Signing account")
@click.pass_context
def revoke(ctx: click.Context, proof: str | None, file: str | None, sender: str) -> None:
    """Give up the claim on PROOF."""
    call = RevokeClaim(proof=_resolve_proof(proof, file))
    _report(ctx, _submit(ctx.obj, Origin.signed(sender), call))


# ---------------------------------------------------------------------------
# Read-only commands
# ---------------------------------------------------------------------------

@main.command()
@click.argument("proof", required=False)
@click.option("--file", "file", default=None, type=click.Path(exists=True, dir_okay=False), help="Fingerprint this file instead")
@click.pass_context
def show(ctx: click.Context, proof: str | None, file: str | None) -> None:
    """Show the owner and creation block of PROOF."""
    key = _resolve_proof(proof, file)
    registry = asyncio.run(_open(ctx.obj))
    record = registry.service.get_claim(key)
    if record is None:
        click.echo(f"{proof_to_hex(key)} unclaimed")
        return
    click.echo(
        f"{proof_to_hex(key)} owner={record.owner} created_at={record.created_at}"
    )


@main.command("list")
@click.pass_context
def list_claims(ctx: click.Context) -> None:
    """List every claimed proof."""
    registry = asyncio.run(_open(ctx.obj))
    for key, record in sorted(registry.store.items(), key=lambda kv: kv[1].created_at):
        click.echo(
            f"{proof_to_hex(key)} owner={record.owner} created_at={record.created_at}"
        )


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def fingerprint(path: str) -> None:
    """Print the BLAKE2b-256 fingerprint of a file."""
    click.echo(proof_to_hex(fingerprint_file(path)))


if __name__ == "__main__":
    main()

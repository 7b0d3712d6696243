import json

import click

from .cache import DirectoryCacheStore, file_identity_key
from .chain import ChainBuilder
from .config import get_settings
from .exceptions import HashPlayerError, StaleCache
from .logs import configure_logging
from .metrics import start_metrics_server
from .server import BlockServer
from .stream import stream_file
from .utils import HASH_SIZE


# Helper function for consistent error handling and output
def handle_call(ctx, func, success_message, *args, **kwargs):
    """
    Calls a hashplayer function, handles errors, and prints output based on --json-output.
    """
    try:
        result = func(*args, **kwargs)
        if ctx.obj.get("JSON_OUTPUT"):
            click.echo(json.dumps({"status": "success", "result": result}, indent=2))
        else:
            click.echo(f"SUCCESS: {success_message}")
            if isinstance(result, dict):
                for key, value in result.items():
                    click.echo(f"{key}: {value}")
            elif result is not None and not isinstance(result, bool):
                click.echo(result)
        return result
    except (HashPlayerError, OSError) as e:
        error_info = {"status": "error", "type": type(e).__name__, "message": str(e)}
        if ctx.obj.get("JSON_OUTPUT"):
            click.echo(json.dumps(error_info, indent=2))
        else:
            click.echo(f"ERROR: {type(e).__name__}: {e}", err=True)
        if ctx.obj.get("VERBOSE"):
            import traceback

            click.echo(traceback.format_exc(), err=True)
        ctx.exit(1)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False),
    help="Directory holding cached chain hashes. Defaults to HASHPLAYER_CACHE_DIR or ./cache.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--json-output", "-j", is_flag=True, help="Output results in JSON format.")
@click.pass_context
def cli(ctx, cache_dir, verbose, json_output):
    """Split files into hash-chained blocks and stream them with per-block verification."""
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)
    if settings.metrics_enabled:
        start_metrics_server(settings.metrics_port, settings.metrics_addr)
    ctx.ensure_object(dict)
    ctx.obj["STORE"] = DirectoryCacheStore(cache_dir or settings.cache_dir)
    ctx.obj["BLOCK_SIZE"] = settings.block_size
    ctx.obj["VERBOSE"] = verbose
    ctx.obj["JSON_OUTPUT"] = json_output


@cli.command("preprocess")
@click.argument("file", type=click.Path())
@click.option("--block-size", type=int, default=None, help="Block size in bytes (non-positive falls back to 1024).")
@click.pass_context
def preprocess(ctx, file, block_size):
    """Build the hash chain for FILE, or reuse the cached one."""
    store = ctx.obj["STORE"]

    def run():
        info = ChainBuilder(store, ctx.obj["BLOCK_SIZE"]).build(file, block_size)
        return {
            "numBlocks": info.num_blocks,
            "highestBlockSize": info.highest_block_size,
            "blockSize": info.layout.block_size,
            "cacheHit": info.cache_hit,
            "rootHash": BlockServer(info, store).root_hash().hex(),
        }

    handle_call(ctx, run, f"pre-processed {file}")


@cli.command("root-hash")
@click.argument("file", type=click.Path())
@click.pass_context
def root_hash(ctx, file):
    """Print the cached root hash of FILE."""
    store = ctx.obj["STORE"]
    handle_call(ctx, lambda: store.get(file_identity_key(file), 0).hex(), f"root hash of {file}")


@cli.command("stream")
@click.argument("file", type=click.Path())
@click.argument("out", type=click.Path(dir_okay=False))
@click.option("--block-size", type=int, default=None, help="Block size in bytes used when building the chain.")
@click.option("--root-hash", "root_hex", default=None, help="Trusted root hash (hex) received out-of-band.")
@click.pass_context
def stream(ctx, file, out, block_size, root_hex):
    """
    Stream FILE block by block into OUT, verifying every block.

    Example:

        hashplayer stream testdata/input.mp4 out.mp4 --block-size 4096
    """
    try:
        trusted = bytes.fromhex(root_hex) if root_hex else None
    except ValueError:
        raise click.BadParameter("must be a hex string", param_hint="--root-hash")
    if trusted is not None and len(trusted) != HASH_SIZE:
        raise click.BadParameter(f"must be {HASH_SIZE} bytes", param_hint="--root-hash")

    def run():
        result = stream_file(file, out, block_size=block_size, store=ctx.obj["STORE"], root_hash=trusted)
        return {"blocks": result.blocks, "bytes": result.bytes_written, "rootHash": result.root_hash.hex()}

    handle_call(ctx, run, "end of stream")


@cli.command("verify-cache")
@click.argument("file", type=click.Path())
@click.option("--block-size", type=int, default=None, help="Block size the chain was built with.")
@click.pass_context
def verify_cache(ctx, file, block_size):
    """Check that the cached chain of FILE still matches its content."""
    store = ctx.obj["STORE"]

    def run():
        builder = ChainBuilder(store, ctx.obj["BLOCK_SIZE"])
        info = builder.build(file, block_size)
        if not builder.validate(info):
            raise StaleCache(f"cached chain for {file} no longer matches its content; run clear-cache")
        return {"valid": True, "cacheHit": info.cache_hit, "blockSize": info.layout.block_size}

    handle_call(ctx, run, f"checked cache for {file}")


@cli.command("clear-cache")
@click.argument("file", type=click.Path())
@click.pass_context
def clear_cache(ctx, file):
    """Evict the cached chain of FILE."""
    store = ctx.obj["STORE"]
    handle_call(ctx, lambda: store.evict(file_identity_key(file)), f"cleared cache for {file}")


if __name__ == "__main__":
    cli()

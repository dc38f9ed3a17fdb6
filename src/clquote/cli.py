import asyncio
from decimal import Decimal, InvalidOperation
from typing import Literal

import click
import tomlkit
from pydantic import TypeAdapter
from web3 import AsyncHTTPProvider, AsyncWeb3

from clquote import __version__
from clquote.chain_reader import ChainReader
from clquote.config import settings
from clquote.connection import set_async_web3
from clquote.erc20 import Token, default_token_registry
from clquote.exceptions import ClquoteError
from clquote.exceptions.registry import UnknownToken
from clquote.uniswap.v3_batch_benchmark import (
    DEFAULT_BATCH_SIZES,
    DEFAULT_ITERATIONS,
    benchmark_batch_sizes,
)
from clquote.uniswap.v3_quoter import UniswapV3Quoter


def _rpc_endpoint(rpc: str | None) -> str:
    if rpc is None:
        endpoint = settings.rpc.get(settings.chain_id)
        if endpoint is None:
            raise click.UsageError(
                f"No RPC endpoint is configured for chain {settings.chain_id}. "
                "Provide one with --rpc or in the config file."
            )
        rpc = str(endpoint)
    if not rpc.startswith(("http://", "https://")):
        raise click.UsageError(f"Only HTTP RPC endpoints are supported, got {rpc}")
    return rpc


async def _connect(rpc: str) -> ChainReader:
    await set_async_web3(AsyncWeb3(AsyncHTTPProvider(rpc)))
    return ChainReader()


def _raw_amount(amount: str, token: Token, raw: bool) -> int:
    try:
        value = Decimal(amount)
    except InvalidOperation:
        raise click.BadParameter(f"{amount} is not a number", param_hint="AMOUNT") from None
    if not raw:
        value *= Decimal(10) ** token.decimals
    if value != value.to_integral_value() or value <= 0:
        raise click.BadParameter(
            f"{amount} is not a positive whole number of raw units", param_hint="AMOUNT"
        )
    return int(value)


rpc_option = click.option("--rpc", type=str, default=None, help="HTTP RPC endpoint")


@click.group()
@click.version_option(version=__version__)
def cli() -> None: ...


@cli.group()
def config() -> None: ...


@config.command("show")
@click.option(
    "--json",
    "output_format",
    flag_value="json",
    type=str,
    help="Show configuration in JSON format",
)
@click.option(
    "--toml",
    "output_format",
    flag_value="toml",
    type=str,
    help="Show configuration in TOML format (default)",
    default=True,
)
def config_show(output_format: Literal["json", "toml"]) -> None:
    match output_format:
        case "json":
            click.echo(
                TypeAdapter(dict).dump_json(
                    settings.model_dump(mode="json"),
                    indent=2,
                ),
            )
        case "toml":
            click.echo(
                tomlkit.dumps(
                    settings.model_dump(mode="json"),
                ),
            )


@cli.command("quote")
@click.argument("token_in")
@click.argument("token_out")
@click.argument("amount")
@click.option("--raw", is_flag=True, help="AMOUNT is given in raw token units")
@rpc_option
def quote(token_in: str, token_out: str, amount: str, raw: bool, rpc: str | None) -> None:
    """
    Quote the best exact input swap of AMOUNT TOKEN_IN for TOKEN_OUT across all fee tiers.
    """

    tokens = default_token_registry(settings.chain_id)
    try:
        resolved_in = tokens.resolve(token_in)
        resolved_out = tokens.resolve(token_out)
    except UnknownToken as exc:
        raise click.BadParameter(str(exc.message)) from None
    amount_in = _raw_amount(amount, resolved_in, raw)
    endpoint = _rpc_endpoint(rpc)

    async def _quote() -> None:
        quoter = UniswapV3Quoter(await _connect(endpoint), tokens=tokens, tracked_pairs=())
        result = await quoter.get_best_quote(resolved_in, resolved_out, amount_in)
        click.echo(f"Pool:   {result.pool.address} (fee {result.fee})")
        click.echo(f"In:     {amount_in} {resolved_in}")
        click.echo(f"Out:    {result.output_amount} {resolved_out}")
        click.echo(f"Price:  {float(result.decimal_price):.8g} {resolved_out}/{resolved_in}")

    try:
        asyncio.run(_quote())
    except ClquoteError as exc:
        raise click.ClickException(str(exc.message)) from exc


@cli.command("scan")
@click.argument("pool_address")
@rpc_option
def scan(pool_address: str, rpc: str | None) -> None:
    """
    Rebuild the tick set of the pool at POOL_ADDRESS and print its initialized ticks.
    """

    endpoint = _rpc_endpoint(rpc)

    async def _scan() -> None:
        quoter = UniswapV3Quoter(await _connect(endpoint), tracked_pairs=())
        tick_set = await quoter.refresh_pool(pool_address)
        for tick in tick_set:
            click.echo(f"{tick.index:>8} {tick.liquidity_net:>40} {tick.liquidity_gross:>40}")
        click.echo(f"{len(tick_set)} initialized ticks")

    try:
        asyncio.run(_scan())
    except ClquoteError as exc:
        raise click.ClickException(str(exc.message)) from exc


@cli.command("benchmark-batch-size")
@click.argument("pool_address")
@click.option(
    "--batch-size",
    "batch_sizes",
    type=click.IntRange(min=1),
    multiple=True,
    help="Batch size to test, may be repeated",
)
@click.option("--iterations", type=click.IntRange(min=1), default=DEFAULT_ITERATIONS)
@rpc_option
def benchmark_batch_size(
    pool_address: str,
    batch_sizes: tuple[int, ...],
    iterations: int,
    rpc: str | None,
) -> None:
    """
    Time a full scan and fetch of POOL_ADDRESS for each batch size and report the fastest.
    """

    endpoint = _rpc_endpoint(rpc)

    async def _benchmark() -> None:
        reader = await _connect(endpoint)
        pool = await UniswapV3Quoter(reader, tracked_pairs=()).describe_pool(pool_address)
        timings = await benchmark_batch_sizes(
            reader,
            pool,
            batch_sizes=batch_sizes or DEFAULT_BATCH_SIZES,
            iterations=iterations,
        )
        for timing in timings:
            click.echo(
                f"{timing.batch_size:>5}: {timing.total_seconds:.3f}s "
                f"(scan {timing.scan_seconds:.3f}s, fetch {timing.fetch_seconds:.3f}s)"
            )
        click.echo(f"Fastest batch size: {timings[0].batch_size}")

    try:
        asyncio.run(_benchmark())
    except ClquoteError as exc:
        raise click.ClickException(str(exc.message)) from exc

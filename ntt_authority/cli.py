import asyncio
import os
import sys

import click
import ujson as json
from loguru import logger
from solana.exceptions import SolanaRpcException
from solana.rpc.core import RPCException
from solders.pubkey import Pubkey

from ntt_authority import NttManager
from ntt_authority.config import HandoverConfig, build_config
from ntt_authority.errors import ConfirmationTimeoutError, HandoverError
from ntt_authority.handover import AuthorityHandover
from ntt_authority.keys import load_keypair, load_keypairs
from ntt_authority.types import ClaimRequest, HandoverResult, TransferRequest
from ntt_authority.util import explorer_link, instructions_to_dicts, parse_public_key


class PublicKeyParam(click.ParamType):
    name = "public_key"

    def convert(self, value, param, ctx):
        if isinstance(value, Pubkey):
            return value

        try:
            return parse_public_key(value)
        except ValueError as error:
            self.fail(str(error), param, ctx)


PUBLIC_KEY = PublicKeyParam()


class HandoverGroup(click.Group):
    """
    Command group that reports every failure, usage errors included, with
    exit code 1.
    """

    def main(self, *args, **kwargs):
        kwargs["standalone_mode"] = False

        try:
            return super().main(*args, **kwargs)
        except click.ClickException as error:
            error.show()
        except click.Abort:
            click.echo("Aborted!", err=True)
        except ConfirmationTimeoutError as error:
            click.echo(f"Error: {error}", err=True)
            click.echo(
                "The transaction may still land. Check the explorer before retrying.",
                err=True,
            )
        except HandoverError as error:
            click.echo(f"Error: {error}", err=True)
        except (RPCException, SolanaRpcException) as error:
            click.echo(f"RPC error: {error}", err=True)
        except RuntimeError as error:
            click.echo(f"Error: {error}", err=True)

        sys.exit(1)


def handover_options(function):
    options = [
        click.option(
            "--network", help="Solana network", envvar="NETWORK", default="devnet"
        ),
        click.option(
            "--rpc-endpoint", help="Solana RPC endpoint", envvar="RPC_ENDPOINT"
        ),
        click.option("--payer", help="Path to payer keypair", envvar="PAYER_KEYPAIR"),
        click.option(
            "--additional-signer",
            "additional_signers",
            help="Path to the keypair of an additional multisig signer (repeatable)",
            envvar="ADDITIONAL_SIGNERS",
            multiple=True,
        ),
        click.option("--mint", help="Token mint address", envvar="NTT_TOKEN_ADDRESS"),
        click.option(
            "--manager", help="NTT manager address", envvar="NTT_MANAGER_ADDRESS"
        ),
        click.option(
            "--transceiver",
            help="Wormhole transceiver address",
            envvar="NTT_TRANSCEIVER_ADDRESS",
        ),
        click.option(
            "--ntt-version",
            help="Deployed NTT version",
            envvar="NTT_VERSION",
            default="3.0.0",
        ),
        click.option("--chain", help="Chain name", envvar="CHAIN", default="Solana"),
        click.option(
            "--commitment",
            help="Confirmation level to use",
            envvar="COMMITMENT",
            default="finalized",
        ),
        click.option(
            "--dump",
            help="Output instructions rather than transact",
            envvar="DUMP",
            is_flag=True,
            default=False,
        ),
    ]

    for option in reversed(options):
        function = option(function)

    return function


def setup_handover(config: HandoverConfig, dump: bool) -> AuthorityHandover:
    payer = load_keypair(config.payer_path)
    logger.info(f"Loaded payer keypair: {payer.pubkey()}")
    logger.info(f"Token mint: {config.mint}")
    logger.info(f"NTT manager: {config.manager}")
    logger.debug(f"Wormhole transceiver: {config.transceiver}")

    manager = NttManager(
        network=config.network,
        program_key=config.manager,
        fee_payer=payer.pubkey(),
        commitment=config.commitment,
        rpc_endpoint=config.rpc_endpoint,
    )

    return AuthorityHandover(
        reader=manager,
        submitter=manager,
        program_key=config.manager,
        payer=payer,
        expected_mint=config.mint,
        expected_version=config.ntt_version,
        send_transactions=not dump,
    )


def print_instructions(result: HandoverResult):
    click.echo(json.dumps(instructions_to_dicts(result.instructions)))


@click.group(cls=HandoverGroup, invoke_without_command=True)
@click.pass_context
def cli(ctx):
    if ctx.invoked_subcommand is None:
        raise click.UsageError(
            "Missing command (expected 'transfer <NEW_AUTHORITY>' or 'claim <NEW_AUTHORITY>')",
            ctx,
        )


@click.command()
@click.argument("new_authority", type=PUBLIC_KEY)
@handover_options
def transfer(
    new_authority,
    network,
    rpc_endpoint,
    payer,
    additional_signers,
    mint,
    manager,
    transceiver,
    ntt_version,
    chain,
    commitment,
    dump,
):
    """Transfers token mint authority to NEW_AUTHORITY."""
    config = build_config(
        network=network,
        payer=payer,
        mint=mint,
        manager=manager,
        transceiver=transceiver,
        rpc_endpoint=rpc_endpoint,
        additional_signers=additional_signers,
        commitment=commitment,
        chain=chain,
        ntt_version=ntt_version,
    )
    handover = setup_handover(config, dump)
    result = asyncio.run(handover.transfer(TransferRequest(new_authority)))

    if dump:
        print_instructions(result)
        return

    click.echo(
        f"Transaction: {explorer_link('tx', str(result.signature), config.network, config.rpc_endpoint)}"
    )
    click.echo(f"Pending mint authority set to {new_authority}")
    click.echo(
        f"Run 'claim {new_authority}' to complete the mint authority transfer."
    )


@click.command()
@click.argument("new_authority", type=PUBLIC_KEY)
@handover_options
def claim(
    new_authority,
    network,
    rpc_endpoint,
    payer,
    additional_signers,
    mint,
    manager,
    transceiver,
    ntt_version,
    chain,
    commitment,
    dump,
):
    """Completes token mint authority transfer to NEW_AUTHORITY."""
    config = build_config(
        network=network,
        payer=payer,
        mint=mint,
        manager=manager,
        transceiver=transceiver,
        rpc_endpoint=rpc_endpoint,
        additional_signers=additional_signers,
        commitment=commitment,
        chain=chain,
        ntt_version=ntt_version,
    )
    signers = load_keypairs(config.additional_signer_paths)
    handover = setup_handover(config, dump)
    result = asyncio.run(handover.claim(ClaimRequest(new_authority, signers)))

    if dump:
        print_instructions(result)
        return

    click.echo(
        f"Transaction: {explorer_link('tx', str(result.signature), config.network, config.rpc_endpoint)}"
    )
    click.echo(f"Mint authority transferred to {new_authority}")
    click.echo(
        f"Token mint: {explorer_link('address', str(config.mint), config.network, config.rpc_endpoint)}"
    )


cli.add_command(transfer)
cli.add_command(claim)


logger.remove()
logger.add(sys.stdout, serialize=(not os.environ.get("DEV_MODE")))

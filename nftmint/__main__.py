from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .config import CollectionConfig, get_config
from .deployment import Deployment
from .exceptions import DeploymentError, KeyEncryptionError, MintError
from .logging_config import setup_logging


def _read_password(confirm: bool = False) -> str:
    import getpass
    password = getpass.getpass("Enter key encryption password: ")
    if confirm and password != getpass.getpass("Confirm password: "):
        print("Passwords don't match", file=sys.stderr)
        sys.exit(1)
    return password


def _cmd_deploy(args: argparse.Namespace) -> None:
    defaults = get_config().collection
    config = CollectionConfig(
        max_supply=defaults.max_supply if args.max_supply is None else args.max_supply,
        max_mint_per_tx=defaults.max_mint_per_tx if args.max_mint_per_tx is None else args.max_mint_per_tx,
        token_price=defaults.token_price if args.token_price is None else args.token_price,
        set_price=defaults.set_price if args.set_price is None else args.set_price,
        set_size=defaults.set_size if args.set_size is None else args.set_size,
        base_uri=defaults.base_uri if args.base_uri is None else args.base_uri,
    )
    password = _read_password(confirm=True) if args.encrypt_keys else None
    d = Deployment.init(Path(args.data), config, password=password)
    print(json.dumps({"address": d.collection.address, "owner": d.collection.owner}, indent=2))


def _cmd_info(args: argparse.Namespace) -> None:
    c = Deployment.load(Path(args.data)).collection
    print(json.dumps({
        "address": c.address,
        "owner": c.owner,
        "signer": c.signer,
        "max_supply": c.max_supply,
        "max_mint_per_tx": c.max_mint_per_tx,
        "token_price": c.token_price,
        "set_price": c.set_price,
        "set_size": c.set_size,
        "base_uri": c.base_uri,
        "current_token_id": c.current_token_id,
        "treasury": c.treasury,
    }, indent=2, sort_keys=True))


def _cmd_mint(args: argparse.Namespace) -> None:
    with Deployment.open(Path(args.data)) as d:
        ids = d.collection.mint(args.caller, args.amount, value=args.value)
    print(json.dumps(ids))


def _cmd_mint_set(args: argparse.Namespace) -> None:
    with Deployment.open(Path(args.data)) as d:
        ids = d.collection.mint_set(args.caller, value=args.value)
    print(json.dumps(ids))


def _cmd_sign(args: argparse.Namespace) -> None:
    d = Deployment.load(Path(args.data))
    password = _read_password() if args.password_prompt else None
    print("0x" + d.sign(args.caller, args.amount, args.nonce, password=password).hex())


def _cmd_signed_mint(args: argparse.Namespace) -> None:
    with Deployment.open(Path(args.data)) as d:
        ids = d.collection.signed_mint(args.caller, args.amount, args.nonce, args.signature)
    print(json.dumps(ids))


def _cmd_token_uri(args: argparse.Namespace) -> None:
    print(Deployment.load(Path(args.data)).collection.token_uri(args.id))


def _cmd_owner_of(args: argparse.Namespace) -> None:
    print(Deployment.load(Path(args.data)).collection.owner_of(args.id))


def _cmd_balance(args: argparse.Namespace) -> None:
    print(Deployment.load(Path(args.data)).collection.balance_of(args.address))


def _cmd_events(args: argparse.Namespace) -> None:
    for e in Deployment.load(Path(args.data)).collection.events:
        print(json.dumps(e.to_dict(), sort_keys=True))


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="nftmint", description="Fixed-supply NFT collection ledger")
    p.add_argument("--data", default="./collection", help="deployment directory")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("deploy", help="deploy a new collection and generate its authority key")
    s.add_argument("--max-supply", type=int)
    s.add_argument("--max-mint-per-tx", type=int)
    s.add_argument("--token-price", type=int)
    s.add_argument("--set-price", type=int)
    s.add_argument("--set-size", type=int)
    s.add_argument("--base-uri")
    s.add_argument("--encrypt-keys", action="store_true", help="password-protect the authority key")
    s.set_defaults(func=_cmd_deploy)

    s = sub.add_parser("info", help="show configuration and supply")
    s.set_defaults(func=_cmd_info)

    s = sub.add_parser("mint", help="paid mint")
    s.add_argument("--caller", required=True)
    s.add_argument("--amount", required=True, type=int)
    s.add_argument("--value", required=True, type=int, help="payment in smallest currency unit")
    s.set_defaults(func=_cmd_mint)

    s = sub.add_parser("mint-set", help="mint the fixed-size set (once per address)")
    s.add_argument("--caller", required=True)
    s.add_argument("--value", required=True, type=int)
    s.set_defaults(func=_cmd_mint_set)

    s = sub.add_parser("sign", help="issue a signed-mint authorization with the authority key")
    s.add_argument("--caller", required=True)
    s.add_argument("--amount", required=True, type=int)
    s.add_argument("--nonce", required=True, type=int)
    s.add_argument("--password-prompt", action="store_true", help="authority key is encrypted")
    s.set_defaults(func=_cmd_sign)

    s = sub.add_parser("signed-mint", help="redeem a signed-mint authorization")
    s.add_argument("--caller", required=True)
    s.add_argument("--amount", required=True, type=int)
    s.add_argument("--nonce", required=True, type=int)
    s.add_argument("--signature", required=True, help="0x-prefixed hex")
    s.set_defaults(func=_cmd_signed_mint)

    s = sub.add_parser("token-uri", help="metadata URI of a minted token")
    s.add_argument("--id", required=True, type=int)
    s.set_defaults(func=_cmd_token_uri)

    s = sub.add_parser("owner-of", help="owner of a minted token")
    s.add_argument("--id", required=True, type=int)
    s.set_defaults(func=_cmd_owner_of)

    s = sub.add_parser("balance", help="number of tokens held by an address")
    s.add_argument("--address", required=True)
    s.set_defaults(func=_cmd_balance)

    s = sub.add_parser("events", help="print the mint event log")
    s.set_defaults(func=_cmd_events)

    return p


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging()
    try:
        args.func(args)
    except (MintError, DeploymentError, KeyEncryptionError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

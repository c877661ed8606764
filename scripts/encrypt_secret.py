"""Encrypt or decrypt configuration secrets with ScsCrypto.

Produces ``enc:<base64>`` values accepted by the settings loader for
CONFIGMGR_PASSWORD, GRAPH_CLIENT_SECRET and API_KEYS.

Examples:
    python scripts/encrypt_secret.py encrypt "P@ssw0rd"
    python scripts/encrypt_secret.py --key "$CMWS_CRYPTO_KEY" decrypt "enc:..."
    python scripts/encrypt_secret.py hash "api-key" --rounds 1000
"""
from __future__ import annotations
import argparse
import getpass
import os
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from configmgr_api.config.settings import ENCRYPTED_PREFIX
from configmgr_api.core.crypto import DEFAULT_SALT, ScsCrypto


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ConfigMgr Web Service secret helper")
    parser.add_argument("--key", default=os.environ.get("CMWS_CRYPTO_KEY"),
                        help="Passphrase (defaults to CMWS_CRYPTO_KEY, else the machine-bound key)")
    parser.add_argument("--salt", default=DEFAULT_SALT)
    sub = parser.add_subparsers(dest="cmd")
    
    enc = sub.add_parser("encrypt", help="Encrypt a value (prompts when omitted)")
    enc.add_argument("value", nargs="?")
    
    dec = sub.add_parser("decrypt", help="Decrypt an enc: value")
    dec.add_argument("value")
    
    hsh = sub.add_parser("hash", help="Iterated salted SHA-512 of a value")
    hsh.add_argument("value")
    hsh.add_argument("--rounds", type=int, default=1000)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    
    if args.cmd == "hash":
        print(ScsCrypto.create_sha512_hash(args.value, args.rounds))
        return 0
    
    if args.cmd not in {"encrypt", "decrypt"}:
        parser.print_help()
        return 2
    
    crypto = ScsCrypto(args.key, args.salt) if args.key else ScsCrypto()
    if args.cmd == "encrypt":
        value = args.value if args.value is not None else getpass.getpass("Value to encrypt: ")
        print(f"{ENCRYPTED_PREFIX}{crypto.encrypt(value)}")
        return 0
    
    value = args.value[len(ENCRYPTED_PREFIX):] if args.value.startswith(ENCRYPTED_PREFIX) else args.value
    try:
        print(crypto.decrypt(value))
    except ValueError as e:
        print(f"[decrypt] Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

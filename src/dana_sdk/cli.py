"""
Command-line interface for DANA Python SDK
Provides key formatting, canonical string, signing, verification and token commands
"""

import argparse
import sys
import time
from pathlib import Path
from typing import Optional

from .version import __version__
from .config.partner_config import PartnerConfig
from .crypto.keys import KeyMaterial, KeyRole, format_key_block
from .crypto.rsa import sign_content, verify_content
from .crypto.storage import get_default_store
from .exceptions import DanaSDKError
from .http_client import DanaHttpClient
from .signing.canonical_message import build_signed_call_string, build_token_string
from .signing.utils import generate_timestamp


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog='dana-sdk',
        description='DANA SDK command-line interface for request signing and key management'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'DANA Python SDK {__version__}'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    setup_format_key_parser(subparsers)
    setup_canonical_parser(subparsers)
    setup_sign_parser(subparsers)
    setup_verify_parser(subparsers)
    setup_token_parser(subparsers)
    setup_store_key_parser(subparsers)

    return parser


def setup_format_key_parser(subparsers):
    """Setup key block formatting subcommand."""
    format_parser = subparsers.add_parser('format-key', help='Wrap a base64 key in PEM markers')
    format_parser.add_argument('--role', choices=['private', 'public'], required=True, help='Key role')
    source = format_parser.add_mutually_exclusive_group(required=True)
    source.add_argument('--key', help='Base64 key payload')
    source.add_argument('--key-file', help='File containing the base64 key payload')


def setup_canonical_parser(subparsers):
    """Setup canonical string subcommand."""
    canonical_parser = subparsers.add_parser('canonical', help='Print the canonical string to sign')
    canonical_parser.add_argument('--token', action='store_true', help='Build the access-token string')
    canonical_parser.add_argument('--client-id', help='Client id (with --token)')
    canonical_parser.add_argument('--method', help='HTTP method of the call')
    canonical_parser.add_argument('--path', help='Relative path of the call, e.g. /v1.0/balance-inquiry.htm')
    body = canonical_parser.add_mutually_exclusive_group()
    body.add_argument('--body', help='Request body')
    body.add_argument('--body-file', help='File containing the request body')
    canonical_parser.add_argument('--timestamp', help='Timestamp to embed (current time when omitted)')


def setup_sign_parser(subparsers):
    """Setup signing subcommand."""
    sign_parser = subparsers.add_parser('sign', help='Sign a string with an RSA private key')
    sign_parser.add_argument('--data', required=True, help='String to sign')
    key = sign_parser.add_mutually_exclusive_group(required=True)
    key.add_argument('--private-key', help='Base64 private key')
    key.add_argument('--storage-key', help='Storage name of a saved private key')


def setup_verify_parser(subparsers):
    """Setup verification subcommand."""
    verify_parser = subparsers.add_parser('verify', help='Verify a signature over a file body')
    verify_parser.add_argument('--body-file', required=True, help='File containing the signed bytes')
    verify_parser.add_argument('--signature', required=True, help='Base64 signature')
    key = verify_parser.add_mutually_exclusive_group(required=True)
    key.add_argument('--public-key', help='Base64 public key')
    key.add_argument('--storage-key', help='Storage name of a saved public key')


def setup_token_parser(subparsers):
    """Setup token acquisition subcommand."""
    token_parser = subparsers.add_parser('token', help='Request an access token using DANA_* settings')
    token_parser.add_argument('--config', help='JSON configuration file (environment when omitted)')
    token_parser.add_argument('--use-storage', action='store_true', help='Read missing keys from the keyring')


def setup_store_key_parser(subparsers):
    """Setup key storage subcommand."""
    store_parser = subparsers.add_parser('store-key', help='Save key material to the OS keyring')
    store_parser.add_argument('name', help='Storage name')
    store_parser.add_argument('--key', required=True, help='Base64 key payload')
    store_parser.add_argument('--role', choices=['private', 'public'], default='private', help='Key role (default: private)')


def _read_text(path: str) -> str:
    return Path(path).read_text(encoding='utf-8')


def _load_stored_key(name: str, role: KeyRole) -> KeyMaterial:
    material = get_default_store().load(name, role)
    if material is None:
        raise DanaSDKError(f"No key stored under '{name}'", "KEY_NOT_FOUND")
    return material


def handle_format_key_command(args) -> int:
    """Handle key block formatting."""
    key = args.key if args.key is not None else _read_text(args.key_file)
    print(format_key_block(key, KeyRole(args.role.upper())))
    return 0


def handle_canonical_command(args) -> int:
    """Handle canonical string construction."""
    timestamp = args.timestamp or generate_timestamp()

    if args.token:
        if not args.client_id:
            print("Error: --client-id is required with --token", file=sys.stderr)
            return 1
        canonical = build_token_string(args.client_id, timestamp)
    else:
        if not args.method or not args.path:
            print("Error: --method and --path are required", file=sys.stderr)
            return 1
        body = args.body
        if args.body_file:
            body = Path(args.body_file).read_bytes()
        canonical = build_signed_call_string(args.method, args.path, body, timestamp)

    print(canonical.decode('utf-8'))
    return 0


def handle_sign_command(args) -> int:
    """Handle signing."""
    if args.storage_key:
        material = _load_stored_key(args.storage_key, KeyRole.PRIVATE)
    else:
        material = KeyMaterial(value=args.private_key, role=KeyRole.PRIVATE)

    print(sign_content(args.data.encode('utf-8'), material))
    return 0


def handle_verify_command(args) -> int:
    """Handle verification; exit code 0 means the signature is valid."""
    if args.storage_key:
        material = _load_stored_key(args.storage_key, KeyRole.PUBLIC)
    else:
        material = KeyMaterial(value=args.public_key, role=KeyRole.PUBLIC)

    body = Path(args.body_file).read_bytes()
    if verify_content(body, args.signature, material):
        print("✓ Signature VERIFIED")
        return 0

    print("✗ Signature verification FAILED")
    return 1


def handle_token_command(args) -> int:
    """Handle access token acquisition."""
    if args.config:
        config = PartnerConfig.from_file(args.config)
    else:
        config = PartnerConfig.from_env(key_store=get_default_store() if args.use_storage else None)

    with DanaHttpClient(config) as client:
        token = client.session.ensure_token()
        remaining = token.expires_at - time.time()

    print("✓ Access token acquired")
    print(f"  Token Type: {token.token_type}")
    print(f"  Expires In: {remaining:.0f}s")
    return 0


def handle_store_key_command(args) -> int:
    """Handle saving key material to the keyring."""
    material = KeyMaterial(value=args.key, role=KeyRole(args.role.upper()))
    get_default_store().store(args.name, material)
    print(f"Key saved to storage as: {args.name}")
    return 0


COMMAND_HANDLERS = {
    'format-key': handle_format_key_command,
    'canonical': handle_canonical_command,
    'sign': handle_sign_command,
    'verify': handle_verify_command,
    'token': handle_token_command,
    'store-key': handle_store_key_command,
}


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for the CLI

    Args:
        argv: Command line arguments (None to use sys.argv)

    Returns:
        int: Exit code (0 for success, non-zero for failure)
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = create_parser()
    args = parser.parse_args(argv)

    handler = COMMAND_HANDLERS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except DanaSDKError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable

if __package__ in (None, ""):
    repo_src = Path(__file__).resolve().parents[1] / "src"
    if str(repo_src) not in sys.path:
        sys.path.insert(0, str(repo_src))

try:
    from hsm_rest_client import (
        DEFAULT_SIGNATURE_FILE,
        HsmClientError,
        HsmConfig,
        HsmRestClient,
        configure_logging,
    )
except ModuleNotFoundError as exc:
    if exc.name == "requests":
        raise SystemExit(
            "Missing dependency: requests\n"
            "Install it with:\n"
            "  python3 -m pip install -e .\n"
            "or:\n"
            "  python3 -m pip install requests"
        ) from exc
    raise


class _HelpFormatter(
    argparse.RawTextHelpFormatter,
    argparse.ArgumentDefaultsHelpFormatter,
):
    """Readable help with examples and defaults."""


HELP_EPILOG = """Environment:
  HSM_SERVER_ADDRESS   host[:port] of the HSM service (required)
  HSM_API_KEY          API key (name configurable with HSM_API_KEY_ENV)
  HSM_PIN              PIN (name configurable with HSM_PIN_ENV)
  HSM_VERIFY_TLS       set to false to skip certificate checks (insecure)
  HSM_CA_BUNDLE        CA bundle used to verify the server certificate
  HSM_TIMEOUT          request timeout in seconds (default: none)

Examples:
  python3 examples/hsm_cli.py ping
  python3 examples/hsm_cli.py encrypt --message "hello" --key-label app-key
  python3 examples/hsm_cli.py decrypt --ciphertext "<base64>" --key-label app-key
  python3 examples/hsm_cli.py sign --file report.pdf --key-label signer --out report.sig
  python3 examples/hsm_cli.py verify --file report.pdf --signature report.sig --key-label signer
  python3 examples/hsm_cli.py random --length 64
  python3 examples/hsm_cli.py genkey app-key
  python3 examples/hsm_cli.py genkey signer-pub signer-priv
"""


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Drive the remote HSM service from the command line.",
        formatter_class=_HelpFormatter,
        epilog=HELP_EPILOG,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("ping", help="Check that the session is alive.")

    encrypt = sub.add_parser("encrypt", help="Encrypt a message or file.")
    source = encrypt.add_mutually_exclusive_group(required=True)
    source.add_argument("--message", default=None, help="Plaintext message to encrypt.")
    source.add_argument(
        "--file", dest="file_path", default=None, help="File whose contents are encrypted."
    )
    encrypt.add_argument("--key-label", default="", help="Server key label.")

    decrypt = sub.add_parser("decrypt", help="Decrypt base64 ciphertext.")
    decrypt.add_argument("--ciphertext", required=True, help="Base64 ciphertext.")
    decrypt.add_argument("--key-label", default="", help="Server key label.")

    sign = sub.add_parser("sign", help="Sign a file.")
    sign.add_argument("--file", dest="file_path", required=True, help="File to sign.")
    sign.add_argument("--key-label", default="", help="Server key label.")
    sign.add_argument(
        "--out", default=DEFAULT_SIGNATURE_FILE, help="Where to write the signature."
    )

    verify = sub.add_parser("verify", help="Verify a file signature.")
    verify.add_argument("--file", dest="file_path", required=True, help="Signed file.")
    verify.add_argument("--signature", required=True, help="Signature file.")
    verify.add_argument("--key-label", default="", help="Server key label.")

    rnd = sub.add_parser("random", help="Generate random bytes (printed as base64).")
    rnd.add_argument(
        "--length", type=int, default=0, help="Number of bytes; 0 uses the server default."
    )

    genkey = sub.add_parser(
        "genkey", help="Generate a symmetric key, or an asymmetric pair when two labels are given."
    )
    genkey.add_argument("label1", help="Symmetric key label, or public key label.")
    genkey.add_argument("label2", nargs="?", default="", help="Private key label.")

    backup = sub.add_parser("backup", help="Back up a key to a server-side file.")
    backup.add_argument("--file-name", required=True, help="Server-side backup file name.")
    backup.add_argument("--key-label", default="", help="Server key label.")

    restore = sub.add_parser("restore", help="Restore keys from a server-side backup file.")
    restore.add_argument("--file-name", required=True, help="Server-side backup file name.")

    delete = sub.add_parser("delete", help="Delete a key.")
    delete.add_argument("--key-label", default="", help="Server key label.")

    setiv = sub.add_parser("setiv", help="Override the IV for this session.")
    setiv.add_argument("iv", help="Exactly 16 characters.")

    return parser


def _dispatch(args: argparse.Namespace, client: HsmRestClient) -> int:
    command = args.command
    if command == "ping":
        client.ping()
        print("Ping OK")
    elif command == "encrypt":
        if args.file_path is not None:
            plaintext = Path(args.file_path).read_bytes()
        else:
            plaintext = args.message.encode("utf-8")
        print(client.encrypt(plaintext, args.key_label))
    elif command == "decrypt":
        print(client.decrypt(args.ciphertext, args.key_label))
    elif command == "sign":
        output = client.sign(args.file_path, args.key_label, signature_path=args.out)
        print(f"Wrote signature to: {output}")
    elif command == "verify":
        client.verify(args.file_path, args.signature, args.key_label)
        print("Signature is valid")
    elif command == "random":
        print(client.random(args.length))
    elif command == "genkey":
        client.genkey(args.label1, args.label2)
        kind = "asymmetric key pair" if args.label2 else "symmetric key"
        print(f"Generated {kind}")
    elif command == "backup":
        client.backup(args.file_name, args.key_label)
        print(f"Backed up to: {args.file_name}")
    elif command == "restore":
        client.restore(args.file_name)
        print(f"Restored from: {args.file_name}")
    elif command == "delete":
        client.delete(args.key_label)
        print("Deleted")
    elif command == "setiv":
        client.set_iv(args.iv)
        print("IV override applied")
    return 0


def main(
    argv: list[str] | None = None,
    client_factory: Callable[[HsmConfig], HsmRestClient] = HsmRestClient.from_config,
) -> int:
    args = _build_parser().parse_args(argv)
    try:
        configure_logging()
        config = HsmConfig.from_env()
        with client_factory(config) as client:
            return _dispatch(args, client)
    except (HsmClientError, ValueError, OSError) as exc:
        print(f"Client error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

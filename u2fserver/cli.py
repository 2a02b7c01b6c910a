# Copyright (c) 2018 Yubico AB
# All rights reserved.
#
#   Redistribution and use in source and binary forms, with or
#   without modification, are permitted provided that the following
#   conditions are met:
#
#    1. Redistributions of source code must retain the above copyright
#       notice, this list of conditions and the following disclaimer.
#    2. Redistributions in binary form must reproduce the above
#       copyright notice, this list of conditions and the following
#       disclaimer in the documentation and/or other materials provided
#       with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS
# "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT
# LIMITED TO, THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS
# FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE
# COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT,
# INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING,
# BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES;
# LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
# CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT
# LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN
# ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

"""Command line tools to issue U2F challenges and check device responses.

Responses are read from standard input as the JSON produced by the U2F
client. Challenges are exchanged as hex so they can be passed between the
``generate-*`` and ``parse-*`` commands.
"""

from __future__ import annotations

import argparse
import binascii
import logging
import os
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

from .errors import ValidationError
from .register import RegistrationChallenge
from .sign import SignChallenge

CHALLENGE_LENGTH = 32

logger = logging.getLogger("u2fserver.cli")


class UsageError(Exception):
    """Invalid invocation that argparse cannot detect."""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )


def _challenge_from_hex(value: str) -> bytes:
    try:
        return binascii.unhexlify(value)
    except (binascii.Error, ValueError) as e:
        raise UsageError(f"challenge must be hex encoded: {e}") from e


def _read_stdin() -> str:
    data = sys.stdin.read()
    if not data.strip():
        raise UsageError("empty stdin")
    return data


def _generate_register(args: argparse.Namespace) -> int:
    challenge = os.urandom(CHALLENGE_LENGTH)
    request = RegistrationChallenge(args.app_id, challenge)
    print(f"Generated challenge: {challenge.hex()}")
    print(f"RegisterRequest: {request.generate().decode('utf-8')}")
    return 0


def _parse_register(args: argparse.Namespace) -> int:
    challenge = _challenge_from_hex(args.challenge)
    response = _read_stdin()
    try:
        result = RegistrationChallenge(args.app_id, challenge).validate_response(response)
    except ValidationError as e:
        logger.debug("Registration rejected: %s", e.code)
        print(f"KO : {e}")
        return 1
    print("Success")
    print(f"KeyHandle: {result.key_handle}")
    print(f"PublicKey:\n{result.user_public_key_pem}")
    return 0


def _generate_sign(args: argparse.Namespace) -> int:
    challenge = os.urandom(CHALLENGE_LENGTH)
    # The public key is only needed to validate the response.
    request = SignChallenge(args.app_id, args.key_handle, "", challenge)
    print(f"Generated challenge: {challenge.hex()}")
    print(f"SignRequest: {request.generate().decode('utf-8')}")
    return 0


def _parse_sign(args: argparse.Namespace) -> int:
    challenge = _challenge_from_hex(args.challenge)
    if args.public_key_file:
        try:
            public_key = Path(args.public_key_file).read_text(encoding="utf-8")
        except OSError as e:
            raise UsageError(f"unable to read public key: {e}") from e
    else:
        public_key = args.public_key
    response = _read_stdin()
    request = SignChallenge(args.app_id, "", public_key, challenge)
    try:
        result = request.validate_response(response)
    except ValidationError as e:
        logger.debug("Sign response rejected: %s", e.code)
        print(f"KO : {e}")
        return 1
    print("Success")
    print(f"Counter: {result.counter}")
    print(f"UserPresence: {result.user_presence}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="u2f-cli", description="Issue FIDO U2F challenges and validate responses"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    gen_reg = sub.add_parser("generate-register", help="Create a register request")
    gen_reg.add_argument("--app-id", required=True, help="Application ID")
    gen_reg.set_defaults(handler=_generate_register)

    parse_reg = sub.add_parser(
        "parse-register", help="Validate a register response read from stdin"
    )
    parse_reg.add_argument("--app-id", required=True, help="Application ID")
    parse_reg.add_argument("--challenge", required=True, help="Hex encoded challenge")
    parse_reg.set_defaults(handler=_parse_register)

    gen_sign = sub.add_parser("generate-sign", help="Create a sign request")
    gen_sign.add_argument("--app-id", required=True, help="Application ID")
    gen_sign.add_argument("--key-handle", required=True, help="Registered key handle")
    gen_sign.set_defaults(handler=_generate_sign)

    parse_sign = sub.add_parser("parse-sign", help="Validate a sign response read from stdin")
    parse_sign.add_argument("--app-id", required=True, help="Application ID")
    parse_sign.add_argument("--challenge", required=True, help="Hex encoded challenge")
    key_group = parse_sign.add_mutually_exclusive_group(required=True)
    key_group.add_argument("--public-key", help="Registered public key (PEM)")
    key_group.add_argument("--public-key-file", help="File holding the registered public key")
    parse_sign.set_defaults(handler=_parse_sign)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        return args.handler(args)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


def run() -> NoReturn:
    """Execute the command line and exit with its status code."""

    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover - CLI execution
    run()

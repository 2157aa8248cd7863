#!/usr/bin/env python3
"""
T-Bank Session Tool Entry Point

Inspects and maintains the session registry, sends requests through the
recording transport and decodes API date values.

Configuration comes from TBANK_* environment variables (or .env), see
tbank_session/config.py.
"""

import argparse
import json
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from tbank_session.config import get_config
from tbank_session.dates import parse_date, parse_datetime_milli_offset
from tbank_session.errors import TBankSessionError
from tbank_session.logging_config import setup_logging
from tbank_session.sessions import JSONFileSessionStorage
from tbank_session.transport import build_http_client


def _require_phone(config) -> str:
    if not config.phone:
        raise SystemExit("TBANK_PHONE is required for this command")
    return config.phone


def cmd_show(args, config) -> int:
    phone = _require_phone(config)
    session = JSONFileSessionStorage(config.sessions_file).load_session(phone)
    if session is None:
        print(f"No session stored for {phone}")
        return 1

    print(json.dumps(session, ensure_ascii=False, indent=2))
    return 0


def cmd_logout(args, config) -> int:
    phone = _require_phone(config)
    JSONFileSessionStorage(config.sessions_file).update_session(phone, None)
    print(f"Session for {phone} removed")
    return 0


def cmd_fetch(args, config) -> int:
    with build_http_client(config) as client:
        response = client.get(args.url)
    print(f"{response.status_code} {response.reason_phrase}")
    return 0 if response.is_success else 1


def cmd_decode_date(args, config) -> int:
    print(parse_date(args.value).isoformat())
    return 0


def cmd_decode_timestamp(args, config) -> int:
    print(parse_datetime_milli_offset(args.value).isoformat())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="T-Bank session tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("show", help="Print the stored session").set_defaults(func=cmd_show)
    subparsers.add_parser("logout", help="Remove the stored session").set_defaults(func=cmd_logout)

    fetch = subparsers.add_parser("fetch", help="GET a URL with traffic dumps")
    fetch.add_argument("url")
    fetch.set_defaults(func=cmd_fetch)

    decode_date = subparsers.add_parser("decode-date", help="Decode a YYYY-MM-DD date")
    decode_date.add_argument("value")
    decode_date.set_defaults(func=cmd_decode_date)

    decode_timestamp = subparsers.add_parser("decode-timestamp", help="Decode an offset timestamp")
    decode_timestamp.add_argument("value")
    decode_timestamp.set_defaults(func=cmd_decode_timestamp)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format)

    try:
        return args.func(args, config)
    except TBankSessionError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

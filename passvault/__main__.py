"""
Command line entry point for PassVault.

    python -m passvault signup
    python -m passvault users
    python -m passvault report --breach-check
"""

import sys
import getpass
import logging
import argparse
from typing import List, Optional

from . import config
from .analyzer import SecurityAnalyzer
from .audit import ActivityLog
from .blobstore import FileBlobStore, default_store_directory
from .breach import PwnedPasswordsClient
from .errors import AccountExists, AuthenticationFailed
from .session import SessionManager
from .storage import VaultStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="passvault", description=f"{config.APP_NAME} v{config.APP_VERSION}")
    parser.add_argument("--store", default=default_store_directory(), help="Vault directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("signup", help="Create a new vault")
    sub.add_parser("users", help="List accounts on this device")
    report = sub.add_parser("report", help="Print the security report of a vault")
    report.add_argument("--breach-check", action="store_true", help="Query the breach service")
    return parser


def _cmd_signup(manager: SessionManager) -> int:
    passphrase = getpass.getpass("Master password: ")
    if passphrase != getpass.getpass("Confirm master password: "):
        print("Passwords do not match", file=sys.stderr)
        return 1
    is_strong, message = SecurityAnalyzer.check_master_passphrase(passphrase)
    if not is_strong:
        print(f"Warning: {message}", file=sys.stderr)
    try:
        manager.signup(passphrase)
    except AccountExists as e:
        print(e, file=sys.stderr)
        return 1
    manager.logout()
    print("Vault created")
    return 0


def _cmd_users(manager: SessionManager) -> int:
    for user in manager.list_users():
        print(f"{user.identity_hash[:8]}  hint={user.hint}  last login {user.last_login:%Y-%m-%d %H:%M}")
    return 0


def _cmd_report(manager: SessionManager, breach_check: bool) -> int:
    try:
        snapshot = manager.login(getpass.getpass("Master password: "))
    except AuthenticationFailed:
        print("Invalid master password", file=sys.stderr)
        return 1

    oracle = PwnedPasswordsClient() if breach_check and snapshot.settings.enable_breach_check else None
    analyzer = SecurityAnalyzer(breach_oracle=oracle, expiry_days=snapshot.settings.password_expiry_days)
    try:
        entries = analyzer.scan_breaches(snapshot.entries) if oracle else snapshot.entries
        report = analyzer.analyze(entries)
    finally:
        if oracle:
            oracle.close()
        manager.logout()

    print(f"Security score: {report.security_score:.0f}/100")
    print(f"Entries: {report.total_passwords}")
    print(f"Weak: {report.weak_passwords}  Reused: {report.reused_passwords}  "
          f"Expired: {report.expired_passwords}  Compromised: {report.compromised_passwords}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s')

    store = FileBlobStore(args.store)
    vault = VaultStore(store)
    manager = SessionManager(vault, activity_log=ActivityLog(f"{args.store}/{config.AUDIT_LOG_FILE}"))
    try:
        if args.command == "signup":
            return _cmd_signup(manager)
        if args.command == "users":
            return _cmd_users(manager)
        return _cmd_report(manager, args.breach_check)
    finally:
        manager.logout()
        vault.close()


if __name__ == "__main__":
    sys.exit(main())

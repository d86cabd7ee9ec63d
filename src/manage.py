"""Crate marketplace management CLI.

Usage:
    python src/manage.py setup-db           # Create all tables
    python src/manage.py drop-db            # Drop all tables
    python src/manage.py show-settings      # Print the effective business settings
"""

import argparse
import sys


def setup_database():
    from marketplace.domain import marketplace
    from marketplace.utils.db import setup_db

    print("Initializing marketplace domain...")
    marketplace.init()
    print("Creating marketplace database schema...")
    setup_db(marketplace)
    print("Done.")


def drop_database():
    from marketplace.domain import marketplace
    from marketplace.utils.db import drop_db

    print("Initializing marketplace domain...")
    marketplace.init()
    print("Dropping marketplace database schema...")
    drop_db(marketplace)
    print("Done.")


def show_settings():
    from marketplace.config import get_settings

    settings = get_settings()
    print(f"Client commission:   {settings.client_commission_rate}%")
    print(f"Supplier commission: {settings.supplier_commission_rate}%")
    print(f"Transfer approval:   {'required' if settings.require_transfer_approval else 'skipped'}")
    print(f"Transfer method:     {settings.default_transfer_method}")
    print("Crate deposits:")
    for crate_type, price in settings.crate_deposit_prices.items():
        print(f"  {crate_type:<6} {price}")


def main():
    parser = argparse.ArgumentParser(description="Crate marketplace management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("show-settings", help="Print commission rates, deposit prices and payout policy")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "show-settings":
        show_settings()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

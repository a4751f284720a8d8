#!/usr/bin/env python3
"""Emit deterministic SQL that seeds or promotes a Jobly administrator."""

from __future__ import annotations

import argparse


def _quote_sql(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def render_sql(
    *,
    username: str,
    first_name: str | None,
    last_name: str | None,
    email: str | None,
    revoke: bool,
) -> str:
    username_value = _quote_sql(username)
    admin_value = "false" if revoke else "true"

    if email is None:
        return f"""-- Jobly admin bootstrap SQL
-- Run this against the Jobly database in a privileged session.

update users
set is_admin = {admin_value}
where username = {username_value};
"""

    return f"""-- Jobly admin bootstrap SQL
-- Run this against the Jobly database in a privileged session.

insert into users (username, first_name, last_name, email, is_admin)
values ({username_value}, {_quote_sql(first_name or username)}, {_quote_sql(last_name or username)}, {_quote_sql(email)}, {admin_value})
on conflict (username) do update
set is_admin = excluded.is_admin;
"""


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit SQL to grant or revoke Jobly admin rights.")
    parser.add_argument("--username", required=True, help="users.username to promote")
    parser.add_argument(
        "--email",
        help="Create the user with this email when it does not exist yet",
    )
    parser.add_argument("--first-name", help="first_name for a newly created user")
    parser.add_argument("--last-name", help="last_name for a newly created user")
    parser.add_argument(
        "--revoke",
        action="store_true",
        help="Clear the admin flag instead of setting it",
    )
    args = parser.parse_args()

    print(
        render_sql(
            username=args.username,
            first_name=args.first_name,
            last_name=args.last_name,
            email=args.email,
            revoke=args.revoke,
        )
    )


if __name__ == "__main__":
    main()

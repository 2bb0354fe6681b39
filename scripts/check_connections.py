#!/usr/bin/env python3
"""
Connection Check Script

Verifies the database, the configured file storage backend, the identity
provider key endpoint and (when configured) DeepSeek.
Usage: python scripts/check_connections.py
"""
from referralme.core.config import get_settings
from referralme.core.identity import IdentityTokenError, fetch_public_keys
from referralme.db.postgres import check_database_connection
from referralme.services.deepseek_client import get_deepseek_client
from referralme.services.file_storage import get_file_storage


def main():
    settings = get_settings()
    print("=" * 50)
    print("REFERRALME - CONNECTION CHECK")
    print("=" * 50)

    print("\n[1] Database...")
    url = settings.sqlalchemy_url
    print(f"    URL: {url.split('@')[-1] if '@' in url else url}")
    print("    OK" if check_database_connection() else "    FAILED")

    print("\n[2] File storage...")
    storage = get_file_storage()
    print(f"    Backend: {storage.name}")
    print("    OK" if storage.is_available() else "    UNAVAILABLE (uploads will use the inline fallback if enabled)")

    print("\n[3] Identity provider keys...")
    print(f"    Project: {settings.firebase_project_id or '(FIREBASE_PROJECT_ID not set)'}")
    try:
        keys, _ = fetch_public_keys()
        print(f"    OK ({len(keys)} signing keys)")
    except IdentityTokenError as e:
        print(f"    FAILED: {e}")

    print("\n[4] DeepSeek API...")
    if settings.deepseek_api_key:
        print("    OK" if get_deepseek_client().check_connection() else "    FAILED")
    else:
        print("    Not configured, ATS uses the keyword heuristic")

    print("\n" + "=" * 50)


if __name__ == "__main__":
    main()

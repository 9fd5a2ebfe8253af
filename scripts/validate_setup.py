"""Validate that the checkout backend is properly configured."""

import asyncio
import sys
from pathlib import Path

from pydantic import ValidationError

from storefront.config import Settings
from storefront.state.store import Store


async def check_python_version() -> bool:
    """Check if Python version is 3.11+."""
    print("Checking Python version...")

    version = sys.version_info
    if version < (3, 11):
        print(f"  ❌ Python {version.major}.{version.minor} detected")
        print("  → Python 3.11+ required")
        return False

    print(f"  ✓ Python {version.major}.{version.minor} detected")
    return True


async def check_settings() -> bool:
    """Check that settings load and the Swish setup is complete."""
    print("\nChecking configuration...")

    if not Path(".env").exists():
        print("  ℹ️  No .env file, using environment variables and defaults")

    try:
        settings = Settings()
    except ValidationError as e:
        print(f"  ❌ Invalid settings:\n{e}")
        return False

    print(f"  ✓ Settings loaded (environment: {settings.environment})")

    if settings.swish_environment == "mock":
        print("  ℹ️  Swish runs in mock mode, no payment requests leave the process")
    else:
        missing = [
            name
            for name in ("swish_cert_path", "swish_key_path")
            if not getattr(settings, name)
        ]
        missing += [
            name
            for name in ("swish_cert_path", "swish_key_path", "swish_ca_cert_path")
            if getattr(settings, name) and not Path(getattr(settings, name)).exists()
        ]
        if missing:
            print(f"  ❌ Swish {settings.swish_environment} certificates missing: {', '.join(missing)}")
            return False
        print(f"  ✓ Swish certificates present for {settings.swish_environment}")

    if not settings.smtp_host:
        print("  ℹ️  SMTP_HOST not set, order e-mails are disabled")
    if not settings.alert_webhook_url:
        print("  ℹ️  ALERT_WEBHOOK_URL not set, alerts are only logged")
    return True


async def check_redis() -> bool:
    """Check that Redis answers."""
    print("\nChecking Redis...")

    settings = Settings()
    store = Store(settings)
    try:
        await store.connect()
        await store.ping()
    except Exception as e:
        print(f"  ❌ Redis not reachable at {settings.redis_url}: {e}")
        return False
    finally:
        await store.disconnect()

    print(f"  ✓ Redis reachable at {settings.redis_url}")
    return True


async def main() -> None:
    """Run all validation checks."""
    print("\n" + "=" * 60)
    print("  Storefront Checkout - Setup Validation")
    print("=" * 60 + "\n")

    checks = [
        ("Python Version", check_python_version),
        ("Configuration", check_settings),
        ("Redis", check_redis),
    ]

    results = []
    for name, check in checks:
        try:
            result = await check()
            results.append((name, result))
        except Exception as e:
            print(f"  ❌ Error during {name} check: {e}")
            results.append((name, False))

    print("\n" + "=" * 60)
    print("  Validation Summary")
    print("=" * 60)

    all_passed = True
    for name, passed in results:
        status = "✓" if passed else "❌"
        print(f"  {status} {name}")
        if not passed:
            all_passed = False

    print("=" * 60)

    if all_passed:
        print("\n✅ All checks passed! System is ready.")
        print("\nNext steps:")
        print("  1. Seed data: python scripts/seed_data.py")
        print("  2. Start the API: uvicorn storefront.main:app --reload")
        print("  3. Test API: curl http://localhost:8000/health")
    else:
        print("\n❌ Some checks failed. Please fix the issues above.")
        sys.exit(1)

    print()


if __name__ == "__main__":
    asyncio.run(main())

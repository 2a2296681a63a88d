#!/usr/bin/env python3
"""Helper script to check and create the .env file for the route-sequencing service."""

from pathlib import Path
import os
import sys

ENV_TEMPLATE = """# Route-sequencing model (Required for planning)
FLEETPLAN_ORACLE_API_KEY=your-api-key-here
# FLEETPLAN_ORACLE_MODEL=gemini-3-pro-preview
# FLEETPLAN_ORACLE_ADVICE_MODEL=gemini-3-flash-preview

# API Configuration
FLEETPLAN_API_PREFIX=/api
# FLEETPLAN_FRONTEND_ALLOWED_ORIGINS - JSON array or comma-separated list

# Rate limiting per caller
FLEETPLAN_RATE_LIMIT_MAX_REQUESTS=10
FLEETPLAN_RATE_LIMIT_WINDOW_SECONDS=60

# Depot
FLEETPLAN_DEPOT_NAME=Wijchen
FLEETPLAN_DEPOT_LATITUDE=51.8157
FLEETPLAN_DEPOT_LONGITUDE=5.7663
"""


def _mask(value: str) -> str:
    if len(value) > 12:
        return value[:6] + "..." + value[-4:]
    return "***"


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Fleet planner environment checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        print(f"❌ .env file NOT found at: {env_file}")
        print("Creating template .env file...")
        with open(env_file, "w", encoding="utf-8") as f:
            f.write(ENV_TEMPLATE)
        print(f"✅ Created .env file at: {env_file}")
        print("⚠️  Please edit .env and add your FLEETPLAN_ORACLE_API_KEY!")
        return

    print(f"✅ Found .env file at: {env_file}")
    print()

    env_key = os.getenv("FLEETPLAN_ORACLE_API_KEY")
    if env_key:
        print(f"✅ FLEETPLAN_ORACLE_API_KEY (from environment): {_mask(env_key)}")
    else:
        print("ℹ️  FLEETPLAN_ORACLE_API_KEY not set in environment, relying on .env")
    print()

    print("Testing config loading...")
    try:
        sys.path.insert(0, str(project_root / "src"))
        from fleetplan.config import settings
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return

    if settings.oracle_api_key:
        print(f"✅ Config loaded ORACLE_API_KEY: {_mask(settings.oracle_api_key)}")
        print(f"   Model: {settings.oracle_model} (advice: {settings.oracle_advice_model})")
        print("=" * 60)
        print("✅ SUCCESS: Route sequencing is configured!")
        print("=" * 60)
    else:
        print("=" * 60)
        print("❌ ERROR: Route sequencing is NOT configured")
        print("=" * 60)
        print("Troubleshooting:")
        print("1. Make sure .env file exists in project root")
        print("2. Make sure variables start with FLEETPLAN_ prefix")
        print("3. Restart backend after editing .env")


if __name__ == "__main__":
    main()

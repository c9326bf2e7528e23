#!/usr/bin/env python3
"""Helper script to check the .env file and the settings the tracker will run with."""

from pathlib import Path
import os
import sys

TEMPLATE = """# Supabase Configuration (required for tracking)
# Get these from: https://supabase.com/dashboard → Your Project → Settings → API
FLEET_SUPABASE_URL=https://your-project-id.supabase.co
FLEET_SUPABASE_KEY=your-service-role-key-here

# Table names
# FLEET_TRIPS_TABLE=trips
# FLEET_VEHICLES_TABLE=buses
# FLEET_LIVE_LOCATIONS_TABLE=bus_locations

# Simulation
# FLEET_TICK_INTERVAL_SECONDS=20
# FLEET_STOP_WINDOW_PERCENT=2.0
# FLEET_REALTIME_ENABLED=true

# OSRM Routing (public demo server by default)
# FLEET_OSRM_BASE_URL=https://router.project-osrm.org
"""


def _mask(value: str) -> str:
    if len(value) > 20:
        return value[:20] + "..." + value[-10:]
    return value


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Fleet tracker environment checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        print(f"❌ .env file NOT found at: {env_file}")
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"✅ Created template .env file at: {env_file}")
        print("⚠️  Please edit .env and add your Supabase credentials, then rerun this script.")
        return

    print(f"✅ Found .env file at: {env_file}")
    print("-" * 60)
    for line in env_file.read_text(encoding="utf-8").splitlines():
        name, sep, value = line.partition("=")
        if sep and name.strip() == "FLEET_SUPABASE_KEY":
            print(f"{name}={_mask(value.strip())}")
        else:
            print(line)
    print("-" * 60)
    print()

    for name in ("FLEET_SUPABASE_URL", "FLEET_SUPABASE_KEY"):
        if os.getenv(name):
            print(f"✅ {name} is set in the process environment")
        else:
            print(f"ℹ️  {name} not in the process environment (the .env file is still read)")
    print()

    sys.path.insert(0, str(project_root / "src"))
    try:
        from fleet_tracker.config import settings
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return

    print(f"Trips table:        {settings.trips_table}")
    print(f"Vehicles table:     {settings.vehicles_table}")
    print(f"Live table:         {settings.live_locations_table}")
    print(f"OSRM:               {settings.osrm_base_url} ({settings.osrm_profile})")
    print(f"Tick interval:      {settings.tick_interval_seconds:g}s")
    print(f"Realtime changes:   {'on' if settings.realtime_enabled else 'off'}")
    print()

    if settings.database_configured:
        print("=" * 60)
        print("✅ SUCCESS: Supabase is configured, tracking will start with the server")
        print("=" * 60)
    else:
        print("=" * 60)
        print("❌ ERROR: Supabase is NOT configured, tracking endpoints will return 503")
        print("=" * 60)
        print()
        print("Troubleshooting:")
        print("1. Make sure .env file exists in project root")
        print("2. Make sure variables start with FLEET_ prefix")
        print("3. Restart the server after editing .env")


if __name__ == "__main__":
    main()

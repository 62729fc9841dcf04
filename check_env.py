#!/usr/bin/env python
from dotenv import load_dotenv
import os

# Load .env file
load_dotenv()

# Check environment variables
print("Environment Variables Status:")
print("=" * 40)

token_file = os.getenv('PALLET_GUARD_TOKEN_FILE', '.tokens.json')
if os.path.exists(token_file):
    print(f"✓ Token file: {token_file}")
else:
    print(f"✗ Token file: {token_file} NOT FOUND")

for name in ('APEX_TOKEN', 'LOAD_ENTRY_TOKEN'):
    if os.getenv(name):
        print(f"✓ {name}: SET")
    else:
        print(f"✗ {name}: NOT SET (token file is used instead)")

slack_url = os.getenv('SLACK_WEBHOOK_URL')
if slack_url and 'hooks.slack.com' in slack_url:
    print("✓ SLACK_WEBHOOK_URL: SET")
else:
    print("✗ SLACK_WEBHOOK_URL: NOT SET (optional)")

config_path = os.getenv('PALLET_GUARD_CONFIG', os.path.join('config', 'pallet_guard.yml'))
print(f"\nConfig file: {config_path} ({'found' if os.path.exists(config_path) else 'defaults'})")

dry_run = os.getenv('DRY_RUN', 'false')
print(f"DRY_RUN mode: {dry_run}")

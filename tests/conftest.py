from pathlib import Path

from dotenv import load_dotenv


# Load .env file from tests directory if it exists
def pytest_configure(config):
    """Load environment variables from tests/.env before running tests"""
    env_file = Path(__file__).parent / ".env"
    if env_file.exists():
        print(f"\n✅ Loading environment variables from {env_file}")
        load_dotenv(env_file, override=True)
    else:
        print(f"\n⚠️  No .env file found at {env_file}")
        print("Integration tests will be skipped. Create tests/.env from tests/.env.example")

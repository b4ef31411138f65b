"""Config management commands."""

import json
import sys
from pathlib import Path

import cyclopts

app = cyclopts.App(name="config", help="Manage eacchain configuration")

TEMPLATE = """\
# eacchain configuration
# Every key can also be set as EAC_<SECTION>__<KEY>, e.g. EAC_IPFS__API_URL

ipfs:
  api_url: "http://127.0.0.1:5001"
  # store_codec: dag-cbor
  # hash_alg: sha2-256

# Use "local" for offline runs (blocks and keys under store.root)
store:
  backend: ipfs
  # root: ~/.local/share/eacchain

source:
  backend: github
  owner: redransil
  repo: filecoin-renewables-purchases
  branch: main
  # token: ghp_...  # required for write-back
  # backend: directory
  # root: ./filecoin-renewables-purchases

batch:
  on_group_error: skip  # or abort
  partial_aggregate: true
  retry_attempts: 2
  retry_backoff: 1.0
  write_back: false

# logging:
#   level: DEBUG
"""

DEFAULT_CONFIG_NAME = "eacchain.yaml"


@app.command
def init(path: Path = Path(DEFAULT_CONFIG_NAME)) -> None:
    """Create a new config file from template.

    Args:
        path: Path for the config file. Defaults to ./eacchain.yaml
    """
    if path.is_dir():
        print(f"Error: {path} is a directory, not a file path", file=sys.stderr)
        sys.exit(1)

    if path.exists():
        print(f"Error: {path} already exists (refusing to overwrite)", file=sys.stderr)
        sys.exit(1)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(TEMPLATE)
    print(f"Created config at {path}")
    print(f"  eacchain run --config {path}")


@app.command
def validate(path: Path = Path(DEFAULT_CONFIG_NAME)) -> None:
    """Validate a config file.

    Args:
        path: Path to the config file. Defaults to ./eacchain.yaml
    """
    import yaml
    from pydantic import ValidationError

    from eacchain.config import Config

    if not path.exists():
        print(f"Error: {path} not found", file=sys.stderr)
        sys.exit(1)

    try:
        data = yaml.safe_load(path.read_text()) or {}
        Config.model_validate(data)
    except (yaml.YAMLError, ValidationError) as e:
        print(f"✗ {path} is invalid: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"✓ {path} is valid")


@app.command
def show(*, config: Path | None = None) -> None:
    """Show current effective config (the GitHub token is masked).

    Args:
        config: YAML config file.
    """
    from eacchain.cli.util.runtime import load_config

    data = load_config(config).model_dump(mode="json")
    if data["source"].get("token"):
        data["source"]["token"] = "***"
    print(json.dumps(data, indent=2, default=str))

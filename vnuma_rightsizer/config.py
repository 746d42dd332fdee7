import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from dotenv import dotenv_values

from .models import OutputMode


URL_ALIASES = ["VCENTER_URL", "VCENTER_HOST", "VSPHERE_URL", "VMW_URL", "VCSA_URL"]
USER_ALIASES = [
    "VCENTER_USER",
    "VSPHERE_USER",
    "VMW_USER",
    "VCSA_USER",
    "USERNAME",
]
PASSWORD_ALIASES = [
    "VCENTER_PASSWORD",
    "VCENTER_PASS",
    "VSPHERE_PASSWORD",
    "VMW_PASSWORD",
    "VCSA_PASSWORD",
    "PASSWORD",
]
INSECURE_ALIASES = ["VCENTER_INSECURE", "VSPHERE_INSECURE", "VMW_INSECURE"]

DEFAULT_OUT_PATH = "./out/vnuma_rightsizing.xlsx"


@dataclass
class Config:
    server: str
    user: str
    password: str
    insecure: bool
    out_path: str
    csv_path: Optional[str]
    debug: bool
    env_file_used: Optional[str]
    mode: OutputMode = OutputMode.FULL
    vm_filter: List[str] = field(default_factory=list)
    workers: int = 1
    inventory_json: Optional[str] = None

    @property
    def offline(self) -> bool:
        return bool(self.inventory_json)


def _env_bool(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="vNUMA rightsizing: compare VM vCPU layout with host pNUMA topology"
    )
    parser.add_argument("--server", help="vCenter/ESXi URL (https://host)")
    parser.add_argument("--user", help="User name")
    parser.add_argument("--password", help="Password")
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Disable TLS verification (only when required)",
    )
    parser.add_argument("--out", dest="out_path", help="Output .xlsx path")
    parser.add_argument("--csv", dest="csv_path", help="Also write results to this .csv path")
    parser.add_argument(
        "--simple",
        action="store_true",
        help="Only VM and recommendation columns (default: full report)",
    )
    parser.add_argument(
        "--vm",
        dest="vm_filter",
        action="append",
        default=[],
        help="Only evaluate VMs matching this name or wildcard pattern (repeatable)",
    )
    parser.add_argument("--workers", type=int, help="Evaluation threads (default 1)")
    parser.add_argument(
        "--inventory-json",
        dest="inventory_json",
        help="Evaluate an inventory snapshot file instead of a live vCenter",
    )
    parser.add_argument("--debug", action="store_true", help="Debug logging")
    parser.add_argument(
        "--env-file",
        dest="env_file",
        help="Path to a .env file (autodetected when omitted)",
    )
    return parser.parse_args(argv)


def _env_candidates(base_dir: Path) -> List[Path]:
    return [
        Path.cwd() / ".env",
        base_dir / ".env",
    ]


def _resolve_env_file(
    env_file: Optional[str], base_dir: Path, needs_env: bool
) -> Tuple[Optional[Path], List[Path]]:
    attempted = []

    if env_file:
        candidate = Path(env_file)
        attempted.append(candidate)
        if not candidate.is_file():
            raise RuntimeError(f"No .env file found at: {candidate}")
        return candidate, attempted

    if not needs_env:
        return None, attempted

    for candidate in _env_candidates(base_dir):
        attempted.append(candidate)
        if candidate.is_file():
            return candidate, attempted

    return None, attempted


def _read_env_values(env_file: Optional[Path]) -> Dict[str, str]:
    if env_file is None:
        return {}
    values = dotenv_values(env_file)
    normalized = {}
    for key, value in values.items():
        if value is None:
            continue
        normalized[key] = str(value).strip()
    return normalized


def _resolve_alias_value(aliases: List[str], env_values: Dict[str, str]) -> Optional[str]:
    resolved = None
    for key in aliases:
        value = env_values.get(key)
        if value:
            resolved = value
            break

    for key in aliases:
        value = os.environ.get(key)
        if value:
            return value.strip()

    return resolved


def _resolve_plain_value(key: str, env_values: Dict[str, str]) -> Optional[str]:
    resolved = env_values.get(key)
    env_override = os.environ.get(key)
    if env_override:
        return env_override.strip()
    return resolved


def _resolve_workers(cli_value: Optional[int], env_values: Dict[str, str]) -> int:
    if cli_value is not None:
        workers = cli_value
    else:
        raw = _resolve_plain_value("RIGHTSIZER_WORKERS", env_values)
        if not raw:
            return 1
        try:
            workers = int(raw)
        except ValueError:
            raise RuntimeError(f"RIGHTSIZER_WORKERS must be an integer, got: {raw}") from None
    if workers < 1:
        raise RuntimeError(f"Workers must be at least 1, got: {workers}")
    return workers


def load_config(args: argparse.Namespace) -> Config:
    base_dir = Path(__file__).resolve().parent.parent

    server_cli = (args.server or "").strip()
    user_cli = (args.user or "").strip()
    password_cli = (args.password or "").strip()

    needs_env = not args.inventory_json and not (server_cli and user_cli and password_cli)
    env_file, _attempted = _resolve_env_file(args.env_file, base_dir, needs_env)
    env_values = _read_env_values(env_file)

    server_env = _resolve_alias_value(URL_ALIASES, env_values)
    user_env = _resolve_alias_value(USER_ALIASES, env_values)
    password_env = _resolve_alias_value(PASSWORD_ALIASES, env_values)
    insecure_env = _resolve_alias_value(INSECURE_ALIASES, env_values)

    if args.insecure:
        insecure = True
    else:
        insecure = _env_bool(insecure_env)

    out_path = (
        args.out_path
        or _resolve_plain_value("OUT_PATH", env_values)
        or DEFAULT_OUT_PATH
    )
    csv_path = args.csv_path or _resolve_plain_value("CSV_PATH", env_values)

    return Config(
        server=server_cli or (server_env or ""),
        user=user_cli or (user_env or ""),
        password=password_cli or (password_env or ""),
        insecure=insecure,
        out_path=out_path,
        csv_path=csv_path,
        debug=args.debug,
        env_file_used=str(env_file) if env_file else None,
        mode=OutputMode.SIMPLE if args.simple else OutputMode.FULL,
        vm_filter=[pattern.strip() for pattern in args.vm_filter if pattern and pattern.strip()],
        workers=_resolve_workers(args.workers, env_values),
        inventory_json=args.inventory_json,
    )

import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .collectors import STAGE_ORDER
from .config import Config, load_config, parse_args
from .diagnostics import Diagnostics
from .engine import EVALUATION_STAGE, evaluate_inventory
from .models import BatchResult, Priority
from .providers import InventoryProvider, JsonInventoryProvider, VCenterInventoryProvider
from .schemas import ERRORS_SHEET, RESULTS_SHEET, SHEET_ORDER, schemas_for
from .vmware_client import server_host, vcenter_session
from .writer.csv_writer import write_csv
from .writer.excel_writer import write_excel


def setup_logging(debug: bool) -> logging.Logger:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    return logging.getLogger("vnuma_rightsizer")


def _validate_config(config: Config, logger: logging.Logger) -> bool:
    if config.offline:
        if not Path(config.inventory_json).is_file():
            logger.error("Inventory file not found: %s", config.inventory_json)
            return False
        return True

    missing = []
    if not config.server:
        missing.append("--server or VCENTER_URL")
    if not config.user:
        missing.append("--user or VCENTER_USER")
    if not config.password:
        missing.append("--password or VCENTER_PASSWORD")

    if missing:
        logger.error("Missing required parameters: %s", ", ".join(missing))
        return False

    return True


def _mask_user(user: str) -> str:
    if not user:
        return ""
    if "@" in user:
        name, domain = user.split("@", 1)
        if not name:
            return f"***@{domain}"
        visible = name[:2] if len(name) > 1 else name[:1]
        return f"{visible}***@{domain}"
    visible = user[:2] if len(user) > 1 else user[:1]
    return f"{visible}***"


def _write_diagnostics(out_path: Path, diagnostics: Diagnostics, logger: logging.Logger) -> None:
    diagnostics_path = out_path.parent / "diagnostics.json"
    try:
        with diagnostics_path.open("w", encoding="utf-8") as handle:
            json.dump(diagnostics.to_dict(), handle, indent=2, sort_keys=True)
    except OSError as exc:
        logger.debug("Could not write diagnostics.json: %s", exc)


def _print_summary(diagnostics: Diagnostics, logger: logging.Logger) -> None:
    for stage in STAGE_ORDER + [EVALUATION_STAGE]:
        stats = diagnostics.get_stage_stats(stage)
        logger.info(
            "Summary %s: attempted=%s success=%s empty=%s warnings=%s errors=%s",
            stage,
            stats.attempted_count,
            stats.success_count,
            stats.empty_count,
            stats.warning_count,
            stats.total_error_count,
        )


def _log_priorities(batch: BatchResult, logger: logging.Logger) -> None:
    counts = {priority: 0 for priority in Priority}
    for result in batch.results:
        counts[result.priority] += 1
    logger.info(
        "Priorities: HIGH=%s MEDIUM=%s LOW=%s N/A=%s",
        counts[Priority.HIGH],
        counts[Priority.MEDIUM],
        counts[Priority.LOW],
        counts[Priority.NA],
    )


def _write_outputs(config: Config, batch: BatchResult, logger: logging.Logger) -> None:
    schemas = schemas_for(batch.mode)
    data_by_sheet = {RESULTS_SHEET: batch.rows, ERRORS_SHEET: batch.error_rows}

    out_path = Path(config.out_path)
    write_excel(out_path, schemas, data_by_sheet, SHEET_ORDER)
    logger.info("Report written: %s", out_path)

    if config.csv_path:
        csv_path = Path(config.csv_path)
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        for path in write_csv(csv_path, schemas, data_by_sheet, SHEET_ORDER):
            logger.info("CSV written: %s", path)


def _evaluate(
    provider: InventoryProvider, config: Config, diagnostics: Diagnostics, logger: logging.Logger
) -> BatchResult:
    inventory = provider.load()
    if not inventory.vms:
        logger.info("Inventory has no VMs")
    batch = evaluate_inventory(
        inventory,
        mode=config.mode,
        vm_filter=config.vm_filter,
        max_workers=config.workers,
        diagnostics=diagnostics,
    )
    _log_priorities(batch, logger)
    return batch


def run(config: Config, logger: logging.Logger) -> int:
    out_path = Path(config.out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    diagnostics = Diagnostics(STAGE_ORDER + [EVALUATION_STAGE])
    diagnostics.set_runtime_config(
        {
            "env_file_used": config.env_file_used,
            "server_host": server_host(config.server),
            "insecure": config.insecure,
            "mode": config.mode.value,
            "vm_filter": list(config.vm_filter),
            "workers": config.workers,
            "inventory_json": config.inventory_json,
        }
    )
    exit_code = 1

    try:
        if config.offline:
            batch = _evaluate(JsonInventoryProvider(config.inventory_json), config, diagnostics, logger)
        else:
            logger.info("Connecting to %s", config.server)
            with vcenter_session(
                config.server, config.user, config.password, config.insecure
            ) as service_instance:
                provider = VCenterInventoryProvider(
                    service_instance,
                    diagnostics=diagnostics,
                    vcenter=server_host(config.server),
                    log=logger,
                )
                batch = _evaluate(provider, config, diagnostics, logger)

        _write_outputs(config, batch, logger)
        exit_code = 0
    except Exception as exc:
        logger.error("Rightsizing run failed: %s", exc)
    finally:
        _write_diagnostics(out_path, diagnostics, logger)
        _print_summary(diagnostics, logger)

    return exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logger = setup_logging(args.debug)

    try:
        config = load_config(args)
    except Exception as exc:
        logger.error(str(exc))
        return 2

    if not _validate_config(config, logger):
        return 2

    if config.env_file_used:
        logger.info(
            "Credentials loaded from: %s (user: %s)",
            config.env_file_used,
            _mask_user(config.user),
        )

    return run(config, logger)


if __name__ == "__main__":
    sys.exit(main())

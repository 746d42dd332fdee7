import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from fnmatch import fnmatch
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .aggregator import aggregate
from .diagnostics import Diagnostics
from .evaluator import evaluate
from .models import (
    BatchResult,
    Inventory,
    OutputMode,
    ResultRecord,
    RunWarning,
    VmError,
    VmRecord,
)
from .normalizer import TopologyIndex
from .projector import project

logger = logging.getLogger(__name__)

EVALUATION_STAGE = "Evaluation"

_Outcome = Union[Tuple[ResultRecord, List[RunWarning]], Exception]


def select_vms(vms: Iterable[VmRecord], patterns: Optional[Sequence[str]] = None) -> List[VmRecord]:
    """Keep VMs whose name matches any shell-style pattern (case-insensitive)."""
    if not patterns:
        return list(vms)
    lowered = [pattern.lower() for pattern in patterns]
    return [vm for vm in vms if any(fnmatch(vm.name.lower(), pattern) for pattern in lowered)]


def evaluate_vm(
    vm: VmRecord, index: TopologyIndex, mode: OutputMode = OutputMode.FULL
) -> Tuple[ResultRecord, List[RunWarning]]:
    ctx = index.normalize(vm)
    evaluation = evaluate(ctx)
    priority, optimized = aggregate(evaluation.findings)
    record = project(
        ctx,
        evaluation.optimal_sockets,
        evaluation.optimal_cores_per_socket,
        priority,
        optimized,
        evaluation.findings,
        mode=mode,
    )
    return record, ctx.warnings + evaluation.warnings


def _run_sequential(vms: List[VmRecord], index: TopologyIndex, mode: OutputMode) -> List[_Outcome]:
    outcomes: List[_Outcome] = []
    for vm in vms:
        try:
            outcomes.append(evaluate_vm(vm, index, mode))
        except Exception as exc:
            outcomes.append(exc)
    return outcomes


def _run_parallel(
    vms: List[VmRecord], index: TopologyIndex, mode: OutputMode, max_workers: int
) -> List[_Outcome]:
    outcomes: List[Optional[_Outcome]] = [None] * len(vms)
    with ThreadPoolExecutor(max_workers=max_workers) as ex:
        fut_map = {ex.submit(evaluate_vm, vm, index, mode): position for position, vm in enumerate(vms)}
        for fut in as_completed(fut_map):
            position = fut_map[fut]
            try:
                outcomes[position] = fut.result()
            except Exception as exc:
                outcomes[position] = exc
    return outcomes


def evaluate_inventory(
    inventory: Inventory,
    mode: OutputMode = OutputMode.FULL,
    vm_filter: Optional[Sequence[str]] = None,
    max_workers: int = 1,
    diagnostics: Optional[Diagnostics] = None,
) -> BatchResult:
    """Evaluate every selected VM; per-VM failures are collected, never raised."""
    batch = BatchResult(mode=mode)
    vms = select_vms(inventory.vms, vm_filter)
    if not vms:
        logger.info("No VMs to evaluate")
        return batch

    index = TopologyIndex(inventory.hosts, inventory.clusters)
    if max_workers > 1 and len(vms) > 1:
        outcomes = _run_parallel(vms, index, mode, max_workers)
    else:
        outcomes = _run_sequential(vms, index, mode)

    # Outcomes are indexed by input position, not completion order
    for vm, outcome in zip(vms, outcomes):
        if diagnostics is not None:
            diagnostics.add_attempt(EVALUATION_STAGE)

        if isinstance(outcome, Exception):
            error_type = Diagnostics.classify_exception(outcome)
            logger.warning("VM %s not evaluated (%s): %s", vm.name, error_type, outcome)
            batch.errors.append(VmError(vm=vm.name, error_type=error_type, reason=str(outcome)))
            if diagnostics is not None:
                diagnostics.add_error(EVALUATION_STAGE, vm.name, outcome)
            continue

        record, warnings = outcome
        batch.results.append(record)
        batch.warnings.extend(warning.message for warning in warnings)
        if diagnostics is not None:
            diagnostics.add_success(EVALUATION_STAGE)
            for warning in warnings:
                diagnostics.add_warning(
                    EVALUATION_STAGE, vm.name, warning.message, error_type=warning.error_type
                )

    logger.info(
        "Evaluated %s VMs: results=%s errors=%s warnings=%s",
        len(vms),
        len(batch.results),
        len(batch.errors),
        len(batch.warnings),
    )
    return batch

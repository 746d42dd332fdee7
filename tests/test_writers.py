from __future__ import annotations

import csv

from openpyxl import load_workbook

from vnuma_rightsizer.engine import evaluate_inventory
from vnuma_rightsizer.models import Inventory, OutputMode
from vnuma_rightsizer.schemas import (
    ERRORS_SHEET,
    FULL_COLUMNS,
    RESULTS_SHEET,
    SHEET_ORDER,
    SIMPLE_COLUMNS,
    schemas_for,
)
from vnuma_rightsizer.writer.csv_writer import write_csv
from vnuma_rightsizer.writer.excel_writer import write_excel


def _batch(make_vm, make_host, mode=OutputMode.FULL):
    inventory = Inventory(
        vms=[make_vm(name="app01", sockets=4, cores_per_socket=1), make_vm(name="lost01", host_id="host-404")],
        hosts=[make_host()],
    )
    return evaluate_inventory(inventory, mode=mode)


def _sheets(batch):
    return {RESULTS_SHEET: batch.rows, ERRORS_SHEET: batch.error_rows}


def test_excel_report(tmp_path, make_vm, make_host):
    batch = _batch(make_vm, make_host)
    out_path = tmp_path / "report.xlsx"

    write_excel(out_path, schemas_for(batch.mode), _sheets(batch), SHEET_ORDER)

    workbook = load_workbook(out_path)
    assert workbook.sheetnames == SHEET_ORDER
    results = list(workbook[RESULTS_SHEET].iter_rows(values_only=True))
    assert list(results[0]) == FULL_COLUMNS
    row = dict(zip(FULL_COLUMNS, results[1]))
    assert row["VM"] == "app01"
    assert row["Priority"] == "LOW"
    errors = list(workbook[ERRORS_SHEET].iter_rows(values_only=True))
    assert errors[1][0] == "lost01"


def test_csv_report_with_errors_file(tmp_path, make_vm, make_host):
    batch = _batch(make_vm, make_host, mode=OutputMode.SIMPLE)
    csv_path = tmp_path / "report.csv"

    written = write_csv(csv_path, schemas_for(batch.mode), _sheets(batch), SHEET_ORDER)

    assert written == [csv_path, tmp_path / "report_errors.csv"]
    with csv_path.open(newline="", encoding="utf-8") as handle:
        rows = list(csv.DictReader(handle))
    assert list(rows[0]) == SIMPLE_COLUMNS
    assert rows[0]["VM"] == "app01"
    assert rows[0]["Optimal Sockets"] == "1"
    assert rows[0]["Optimized"] == "False"


def test_csv_without_errors_writes_single_file(tmp_path, make_vm, make_host):
    batch = evaluate_inventory(Inventory(vms=[make_vm()], hosts=[make_host()]))
    csv_path = tmp_path / "report.csv"

    written = write_csv(csv_path, schemas_for(batch.mode), _sheets(batch), SHEET_ORDER)

    assert written == [csv_path]
    assert not (tmp_path / "report_errors.csv").exists()

from __future__ import annotations

import json

from openpyxl import load_workbook

from vnuma_rightsizer.main import main
from vnuma_rightsizer.models import Inventory
from vnuma_rightsizer.providers import JsonInventoryProvider, StaticInventoryProvider
from vnuma_rightsizer.schemas import RESULTS_SHEET, SIMPLE_COLUMNS


def _write_inventory(path):
    payload = {
        "vms": [
            {
                "name": "sql01",
                "memory_gb": 200,
                "num_cpu": 5,
                "cores_per_socket": 1,
                "hardware_version": "vmx-19",
                "host_id": "host-1",
            },
            {"name": "web01", "memory_gb": 4, "sockets": 1, "cores_per_socket": 2, "host_id": "host-1"},
        ],
        "hosts": [
            {"name": "esx01", "id": "host-1", "memory_gb": 256, "sockets": 2, "cores_per_socket": 16}
        ],
        "clusters": [],
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_json_provider_loads_inventory(tmp_path):
    inventory = JsonInventoryProvider(_write_inventory(tmp_path / "inventory.json")).load()

    assert [vm.name for vm in inventory.vms] == ["sql01", "web01"]
    assert inventory.vms[0].sockets == 5
    assert inventory.vms[1].num_cpu == 2
    assert inventory.hosts[0].mem_per_numa_node == 128


def test_static_provider(make_vm, make_host):
    provider = StaticInventoryProvider(vms=[make_vm()], hosts=[make_host()])

    inventory = provider.load()

    assert isinstance(inventory, Inventory)
    assert len(inventory.vms) == 1
    assert inventory.clusters == []


def test_offline_run_writes_report_and_diagnostics(tmp_path):
    inventory_path = _write_inventory(tmp_path / "inventory.json")
    out_path = tmp_path / "out" / "report.xlsx"
    csv_path = tmp_path / "out" / "report.csv"

    exit_code = main(
        [
            "--inventory-json",
            str(inventory_path),
            "--out",
            str(out_path),
            "--csv",
            str(csv_path),
            "--simple",
        ]
    )

    assert exit_code == 0
    assert out_path.exists()
    assert csv_path.exists()
    rows = list(load_workbook(out_path)[RESULTS_SHEET].iter_rows(values_only=True))
    assert list(rows[0]) == SIMPLE_COLUMNS
    assert [row[0] for row in rows[1:]] == ["sql01", "web01"]
    diagnostics = json.loads((tmp_path / "out" / "diagnostics.json").read_text(encoding="utf-8"))
    assert diagnostics["Evaluation"]["success_count"] == 2
    assert diagnostics["runtime_config"]["mode"] == "simple"


def test_missing_inventory_file_is_a_config_error(tmp_path):
    assert main(["--inventory-json", str(tmp_path / "missing.json")]) == 2

import csv
from pathlib import Path


def _write_rows(path: Path, headers, rows) -> None:
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(headers)
        for row in rows:
            writer.writerow([row.get(header, "") for header in headers])


def write_csv(csv_path, schemas, data_by_sheet, sheet_order):
    """First sheet goes to ``csv_path``; later sheets only when they have rows."""
    csv_path = Path(csv_path)
    written = []
    for position, sheet_name in enumerate(sheet_order):
        rows = data_by_sheet.get(sheet_name, [])
        if position == 0:
            target = csv_path
        elif rows:
            target = csv_path.with_name(f"{csv_path.stem}_{sheet_name.lower()}{csv_path.suffix or '.csv'}")
        else:
            continue
        _write_rows(target, schemas[sheet_name], rows)
        written.append(target)
    return written

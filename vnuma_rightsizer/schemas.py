from typing import Dict, List, Type

from pydantic import BaseModel

from .models import FullResult, OutputMode, SimpleResult, VmError

RESULTS_SHEET = "vNUMA"
ERRORS_SHEET = "Errors"


def _columns(model: Type[BaseModel]) -> List[str]:
    return [info.serialization_alias or name for name, info in model.model_fields.items()]


FULL_COLUMNS = _columns(FullResult)
SIMPLE_COLUMNS = _columns(SimpleResult)
ERROR_COLUMNS = _columns(VmError)

RESULT_COLUMNS: Dict[OutputMode, List[str]] = {
    OutputMode.FULL: FULL_COLUMNS,
    OutputMode.SIMPLE: SIMPLE_COLUMNS,
}


def schemas_for(mode: OutputMode) -> Dict[str, List[str]]:
    return {RESULTS_SHEET: RESULT_COLUMNS[mode], ERRORS_SHEET: ERROR_COLUMNS}


SHEET_ORDER = [RESULTS_SHEET, ERRORS_SHEET]

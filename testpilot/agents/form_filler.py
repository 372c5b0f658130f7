"""
Table-driven form filling.

Each data-table row names one field and its value in its first two columns.
Columns are read by position, so any header labels work.
"""

from typing import List, Optional, Tuple

from testpilot.config.agent_prompts import PromptTemplates
from testpilot.core.interfaces import PageAutomation
from testpilot.core.types import TableRow
from testpilot.error_handling.exceptions import MalformedTableRowError
from testpilot.monitoring.logger import get_logger

logger = get_logger("testpilot.agent.form_filler")


def parse_form_row(row: TableRow) -> Tuple[str, str]:
    """
    Read (field name, value) from the first two columns of a row.

    Raises:
        MalformedTableRowError: If the row lacks two populated columns
    """
    values = list(row.values())
    if len(values) < 2:
        raise MalformedTableRowError(row, "fewer than two columns")

    field_name = str(values[0]).strip()
    value = str(values[1]).strip()
    if not field_name or not value:
        raise MalformedTableRowError(row, "field name or value is empty")

    return field_name, value


async def fill_form_from_table(
    page: PageAutomation, table: Optional[List[TableRow]]
) -> int:
    """
    Issue one fill instruction per well-formed row.

    Malformed rows are skipped with a warning. Failures of the page
    automation propagate.

    Returns:
        Number of fields filled
    """
    filled = 0
    for index, row in enumerate(table or [], start=1):
        try:
            field_name, value = parse_form_row(row)
        except MalformedTableRowError as e:
            logger.warning(f"Skipping table row {index}: {e.message}")
            continue

        logger.info(f"Filling field '{field_name}'")
        await page.act(PromptTemplates.form_fill(field_name, value))
        filled += 1

    return filled

"""
IO utilities for saving/loading settings and exporting simulation results.
Handles JSON serialization of settings and CSV exports of results.
"""
import io
import json
import logging
from dataclasses import asdict, fields
from datetime import date
from typing import Any, Dict, List, Sequence

import numpy as np
import pandas as pd

from simulation import SimulationSettings, SimulationResults, PathRecord, validate_settings
from display import build_spending_bands, legacy_summary, dollar_type, normalize_legacy_outcomes

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_FILENAME = "tpaw_simulation_data.csv"

PATH_RECORD_COLUMNS = [f.name for f in fields(PathRecord)]

# Dollar-valued columns; converted and relabeled for nominal export
DOLLAR_COLUMNS = [
    'start_balance_real', 'lmp_payment_real', 'risk_withdrawal_real',
    'total_spending_real', 'end_balance_real'
]

SETTINGS_FIELDS = {f.name for f in fields(SimulationSettings)}


def settings_to_dict(settings: SimulationSettings) -> Dict[str, Any]:
    """
    Convert SimulationSettings to dictionary for JSON serialization.

    Args:
        settings: SimulationSettings object

    Returns:
        Dictionary representation (birth date as ISO string)
    """
    settings_dict = asdict(settings)
    if settings_dict.get('birth_date') is not None:
        settings_dict['birth_date'] = settings_dict['birth_date'].isoformat()
    return settings_dict


def dict_to_settings(settings_dict: Dict[str, Any]) -> SimulationSettings:
    """
    Convert dictionary to SimulationSettings object.

    Unknown keys are dropped so files written by other versions still load.
    """
    filtered_dict = {k: v for k, v in settings_dict.items() if k in SETTINGS_FIELDS}
    unknown = set(settings_dict) - SETTINGS_FIELDS
    if unknown:
        logger.debug("Ignoring unknown settings keys: %s", sorted(unknown))

    if isinstance(filtered_dict.get('birth_date'), str):
        filtered_dict['birth_date'] = date.fromisoformat(filtered_dict['birth_date'])

    return SimulationSettings(**filtered_dict)


def save_settings_json(settings: SimulationSettings, filepath: str) -> None:
    """Save settings to a JSON file"""
    with open(filepath, 'w') as f:
        json.dump(settings_to_dict(settings), f, indent=2)


def load_settings_json(filepath: str) -> SimulationSettings:
    """Load settings from a JSON file"""
    with open(filepath, 'r') as f:
        settings_dict = json.load(f)
    return dict_to_settings(settings_dict)


def create_settings_download_json(settings: SimulationSettings) -> str:
    return json.dumps(settings_to_dict(settings), indent=2)


def parse_settings_upload_json(json_string: str) -> SimulationSettings:
    return dict_to_settings(json.loads(json_string))


def validate_settings_json(json_string: str) -> tuple[bool, str]:
    """
    Validate uploaded settings JSON.

    Args:
        json_string: JSON string to validate

    Returns:
        (is_valid, error_message)
    """
    try:
        settings_dict = json.loads(json_string)
        if not isinstance(settings_dict, dict):
            return False, "Settings JSON must be an object"

        required_fields = ['start_balance', 'horizon_years', 'n_sims']
        for name in required_fields:
            if name not in settings_dict:
                return False, f"Missing required field: {name}"

        settings = dict_to_settings(settings_dict)
        validate_settings(settings)
        return True, ""

    except json.JSONDecodeError as e:
        return False, f"Invalid JSON: {str(e)}"
    except (TypeError, ValueError) as e:
        return False, f"Settings validation error: {str(e)}"


def path_records_dataframe(records: Sequence[PathRecord], nominal: bool = False) -> pd.DataFrame:
    """
    Tabulate path records, optionally converted to nominal dollars.

    Nominal conversion multiplies each dollar column by the row's cumulative
    inflation factor and renames it from *_real to *_nominal. Year, path index
    and the inflation factor itself are left alone.
    """
    df = pd.DataFrame([asdict(r) for r in records], columns=PATH_RECORD_COLUMNS)
    if not nominal:
        return df

    for col in DOLLAR_COLUMNS:
        df[col] = df[col] * df['cumulative_inflation']
    rename_dict = {col: col.replace('_real', '_nominal') for col in DOLLAR_COLUMNS}
    return df.rename(columns=rename_dict)


def export_path_records_csv(records: Sequence[PathRecord], nominal: bool = False) -> str:
    """
    Export the per-path audit log to a CSV string.

    Args:
        records: Path records in engine order (all years of path 1, then path 2, ...)
        nominal: Convert dollar fields to nominal dollars

    Returns:
        CSV string
    """
    if len(records) == 0:
        raise ValueError("No data to export. Run a simulation first.")
    return path_records_dataframe(records, nominal).to_csv(index=False)


def export_legacy_outcomes_csv(legacy_outcomes: np.ndarray, currency_format: str = "real") -> str:
    """Export one terminal balance per path"""
    df = pd.DataFrame({
        'sim': range(1, len(legacy_outcomes) + 1),
        f'legacy_{currency_format}': legacy_outcomes
    })
    return df.to_csv(index=False)


def export_spending_bands_csv(bands: Dict[str, np.ndarray], labels: List[str]) -> str:
    """
    Export the chart series to CSV.

    Args:
        bands: Output of display.build_spending_bands
        labels: One x-axis label per year
    """
    df = pd.DataFrame({'label': labels})
    for name, values in bands.items():
        df[name] = values
    return df.to_csv(index=False)


def create_summary_report(results: SimulationResults, settings: SimulationSettings) -> Dict[str, Any]:
    """
    Summary of a run in the units selected by `settings` display flags.

    Args:
        results: Simulation results
        settings: Current settings (display flags may differ from the run's)
    """
    legacy = legacy_summary(results.legacy_outcomes, settings)
    return {
        'settings': settings_to_dict(settings),
        'currency_format': dollar_type(settings).lower(),
        'derived': {
            'lmp_cost': results.derived.lmp_cost,
            'risk_start': results.derived.risk_start,
            'avg_portfolio_return': results.derived.avg_portfolio_return,
            'initial_withdrawal': results.derived.initial_withdrawal,
        },
        'legacy': {
            'p5': legacy[0.05],
            'p50': legacy[0.5],
            'p95': legacy[0.95],
            'min': legacy['min'],
            'max': legacy['max'],
        },
        'completed_paths': results.completed_paths,
        'cancelled': results.cancelled,
        'warnings': list(results.warnings),
    }


def export_summary_report_json(report: Dict[str, Any]) -> str:
    return json.dumps(report, indent=2, default=str)


def create_batch_export_zip(results: SimulationResults, settings: SimulationSettings,
                            labels: List[str]) -> io.BytesIO:
    """
    Create ZIP file containing all export files.

    Args:
        results: Simulation results
        settings: Current settings, display flags included
        labels: X-axis labels for the spending series

    Returns:
        BytesIO object containing ZIP file
    """
    import zipfile

    currency_format = dollar_type(settings).lower()
    zip_buffer = io.BytesIO()

    with zipfile.ZipFile(zip_buffer, 'w', zipfile.ZIP_DEFLATED) as zip_file:
        zip_file.writestr('settings.json', create_settings_download_json(settings))
        zip_file.writestr(DEFAULT_EXPORT_FILENAME,
                          export_path_records_csv(results.path_records, settings.display_nominal))
        zip_file.writestr(f'legacy_{currency_format}.csv',
                          export_legacy_outcomes_csv(
                              normalize_legacy_outcomes(results.legacy_outcomes, settings), currency_format))
        bands = build_spending_bands(results.results_by_year, settings)
        zip_file.writestr('spending_bands.csv', export_spending_bands_csv(bands, labels))
        report = create_summary_report(results, settings)
        zip_file.writestr('summary_report.json', export_summary_report_json(report))

    zip_buffer.seek(0)
    return zip_buffer


def format_currency(value: float) -> str:
    """Whole-dollar US currency string, e.g. $1,234,568 or -$5,000"""
    rounded = int(round(value))
    if rounded < 0:
        return f"-${abs(rounded):,}"
    return f"${rounded:,}"

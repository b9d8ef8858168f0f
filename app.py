"""
Streamlit front end for the TPAW retirement planner.
Collects settings, runs (or reuses) the Monte Carlo engine and renders
summary metrics, the spending chart, the legacy distribution and exports.
"""
import logging
from datetime import date

import streamlit as st

from simulation import SimulationSettings
from cache import SimulationCache
from config_utils import (
    DEFAULT_FORM_VALUES, settings_from_form, allocation_sums_to_100, complementary_allocation
)
from display import (
    build_spending_bands, chart_labels, age_labels, legacy_summary, normalize_legacy_outcomes
)
from charts import create_spending_chart, create_legacy_distribution
from io_utils import (
    export_path_records_csv, export_legacy_outcomes_csv, export_spending_bands_csv,
    create_settings_download_json, parse_settings_upload_json,
    validate_settings_json, settings_to_dict, format_currency, DEFAULT_EXPORT_FILENAME
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

# Starting values shown in the form
FORM_START_VALUES = {
    **DEFAULT_FORM_VALUES,
    'birth_date': date(1960, 1, 1),
    'start_balance': 1_000_000.0,
    'stock_pct': 60.0,
    'bond_pct': 40.0,
}


def initialize_session_state():
    """Initialize form values and the result cache"""
    for key, value in FORM_START_VALUES.items():
        if key not in st.session_state:
            st.session_state[key] = value
    if 'simulation_cache' not in st.session_state:
        st.session_state.simulation_cache = SimulationCache()
    for key in ('cap_text', 'seed_text'):
        if key not in st.session_state:
            st.session_state[key] = ""
    if 'allocation_confirmed' not in st.session_state:
        st.session_state.allocation_confirmed = False


def _on_stock_change():
    _, st.session_state.bond_pct = complementary_allocation(
        st.session_state.stock_pct, st.session_state.bond_pct)


def _on_bond_change():
    _, st.session_state.stock_pct = complementary_allocation(
        st.session_state.bond_pct, st.session_state.stock_pct)


def load_uploaded_settings():
    """Apply an uploaded settings file once, before any widget is created"""
    uploaded = st.sidebar.file_uploader("Load settings JSON", type=['json'])
    if uploaded is None:
        return
    marker = (uploaded.name, uploaded.size)
    if st.session_state.get('loaded_settings_marker') == marker:
        return

    json_string = uploaded.getvalue().decode('utf-8')
    is_valid, message = validate_settings_json(json_string)
    if not is_valid:
        st.sidebar.error(message)
        return

    loaded = settings_to_dict(parse_settings_upload_json(json_string))
    if loaded.get('birth_date'):
        loaded['birth_date'] = date.fromisoformat(loaded['birth_date'])
    cap = loaded.pop('max_total_spending_value')
    seed = loaded.pop('random_seed')
    for key, value in loaded.items():
        st.session_state[key] = value
    st.session_state.cap_text = "" if cap is None else f"{cap:g}"
    st.session_state.seed_text = "" if seed is None else str(seed)
    st.session_state.loaded_settings_marker = marker
    st.sidebar.success("Settings loaded")


def create_sidebar():
    """Create sidebar with all input controls"""
    st.sidebar.title("TPAW Planner")

    st.sidebar.header("Settings File")
    load_uploaded_settings()

    st.sidebar.header("You")
    st.sidebar.date_input("Birth date", key='birth_date', min_value=date(1900, 1, 1))
    st.sidebar.number_input("Expected inflation (%)", key='expected_inflation', step=0.1)

    st.sidebar.header("Guaranteed Income (LMP)")
    st.sidebar.number_input("Annual amount ($, real)", key='lmp_amount', min_value=0.0, step=1000.0)
    st.sidebar.number_input("Discount rate (%)", key='lmp_rate', step=0.1)
    st.sidebar.number_input("Years funded", key='lmp_years', min_value=0, step=1)

    st.sidebar.header("Portfolio")
    st.sidebar.number_input("Starting balance ($)", key='start_balance', min_value=0.0, step=10_000.0)
    st.sidebar.number_input("Horizon (years)", key='horizon_years', min_value=1, step=1)
    st.sidebar.number_input("Stocks (%)", key='stock_pct', min_value=0.0, max_value=100.0,
                            on_change=_on_stock_change)
    st.sidebar.number_input("Bonds (%)", key='bond_pct', min_value=0.0, max_value=100.0,
                            on_change=_on_bond_change)

    with st.sidebar.expander("Return Model (Real, Annual %)", expanded=False):
        st.number_input("Stock mean return", key='stock_return', step=0.1)
        st.number_input("Stock volatility", key='stock_sigma', min_value=0.0, step=0.1)
        st.number_input("Bond mean return", key='bond_return', step=0.1)
        st.number_input("Bond volatility", key='bond_sigma', min_value=0.0, step=0.1)

    st.sidebar.header("Spending")
    st.sidebar.number_input("Legacy target ($, real)", key='legacy_target', min_value=0.0, step=10_000.0)
    st.sidebar.text_input("Max total spending ($, real, blank for none)", key='cap_text')
    st.sidebar.selectbox("Cap period", options=['annual', 'monthly'], key='max_total_spending_period')

    st.sidebar.header("Simulation")
    st.sidebar.number_input("Number of paths", key='n_sims', min_value=1, step=100)
    st.sidebar.text_input("Random seed (blank for random)", key='seed_text')

    st.sidebar.header("Display")
    st.sidebar.checkbox("Show funding sources separately", key='show_sources')
    st.sidebar.checkbox("Display monthly", key='display_monthly')
    st.sidebar.checkbox("Display nominal dollars", key='display_nominal')


def get_current_settings() -> SimulationSettings:
    form = {key: st.session_state.get(key) for key in DEFAULT_FORM_VALUES}
    form['max_total_spending_value'] = st.session_state.cap_text.strip()
    form['random_seed'] = st.session_state.seed_text.strip()
    return settings_from_form(form)


def display_summary(results, settings: SimulationSettings):
    """Purchase cost, risk start, initial withdrawal and legacy percentiles"""
    labels = chart_labels(settings)
    derived = results.derived

    col1, col2, col3 = st.columns(3)
    col1.metric("LMP Cost", format_currency(derived.lmp_cost))
    col2.metric("Risk Portfolio Start", format_currency(derived.risk_start))
    col3.metric("Initial Withdrawal (W0)", format_currency(derived.initial_withdrawal))

    legacy = legacy_summary(results.legacy_outcomes, settings)
    st.subheader("Legacy")
    col1, col2, col3 = st.columns(3)
    col1.metric("95th Percentile", format_currency(legacy[0.95]))
    col2.metric("Median", format_currency(legacy[0.5]))
    col3.metric("5th Percentile", format_currency(legacy[0.05]))
    st.caption(labels['legacy_note'])


def main():
    st.set_page_config(page_title="TPAW Planner", page_icon="📈", layout="wide")
    initialize_session_state()
    create_sidebar()

    st.title("Retirement Spending Projection")

    try:
        settings = get_current_settings()
    except (TypeError, ValueError) as e:
        st.error(f"Invalid settings: {e}")
        return

    cache: SimulationCache = st.session_state.simulation_cache

    shown_warnings = set()
    run_clicked = st.button("Run Simulation", type="primary")
    if not allocation_sums_to_100(settings.stock_pct, settings.bond_pct):
        message = (f"Stock % ({settings.stock_pct:g}%) + Bond % ({settings.bond_pct:g}%) "
                   f"does not equal 100%.")
        st.warning(message)
        shown_warnings.add(message)
        st.session_state.allocation_confirmed = st.checkbox(
            "Continue anyway", value=st.session_state.allocation_confirmed)
        if run_clicked and not st.session_state.allocation_confirmed:
            return

    if run_clicked:
        try:
            with st.spinner("Simulating..."):
                cache.get_or_run(settings, force=True)
        except ValueError as e:
            st.error(f"Simulation aborted: {e}")
            return

    if cache.invalidate_if_changed(settings):
        st.info("Financial inputs changed since the last run. Press **Run Simulation** to update.")
        return

    results = cache.results
    if results is None:
        st.info("Set your plan in the sidebar and press **Run Simulation**.")
        return

    for message in results.warnings:
        if message not in shown_warnings:
            st.warning(message)

    display_summary(results, settings)

    labels = chart_labels(settings)
    x_labels = age_labels(settings)
    bands = build_spending_bands(results.results_by_year, settings)
    st.plotly_chart(create_spending_chart(bands, labels, x_labels), use_container_width=True)

    legacy_display = normalize_legacy_outcomes(results.legacy_outcomes, settings)
    st.plotly_chart(
        create_legacy_distribution(legacy_display, currency_format=labels['dollar_type'].lower()),
        use_container_width=True)

    st.subheader("Export")
    col1, col2, col3, col4 = st.columns(4)
    col1.download_button(
        label="Export CSV",
        data=export_path_records_csv(results.path_records, nominal=settings.display_nominal),
        file_name=DEFAULT_EXPORT_FILENAME,
        mime="text/csv"
    )
    col2.download_button(
        label="Download Settings JSON",
        data=create_settings_download_json(settings),
        file_name="tpaw_settings.json",
        mime="application/json"
    )
    col3.download_button(
        label="Export Legacy CSV",
        data=export_legacy_outcomes_csv(legacy_display, currency_format=labels['dollar_type'].lower()),
        file_name=f"legacy_{labels['dollar_type'].lower()}.csv",
        mime="text/csv"
    )
    col4.download_button(
        label="Export Spending Bands CSV",
        data=export_spending_bands_csv(bands, x_labels),
        file_name="spending_bands.csv",
        mime="text/csv"
    )


if __name__ == "__main__":
    main()

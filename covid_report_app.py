# covid_report_app.py
# This script creates a Streamlit report on COVID-19 in India using the
# Johns Hopkins CSSE time series: it reshapes and filters the data, renders
# the cumulative and daily trend charts, forecasts future case counts with an
# automatically selected ARIMA model and discusses the biases in the data.

import streamlit as st
import pandas as pd

from utils import (
    CONFIRMED_URL, DEATHS_URL, COUNTRY, MODEL_FILE,
    load_data, load_forecast_model, setup_sidebar_filters, summarize_reporting_artifacts
)
from plotting_utils import (
    display_summary_metrics, display_raw_data_sample, display_summary_statistics,
    display_data_dictionary, plot_cumulative_trends, plot_daily_new_cases,
    plot_time_series_decomposition, display_arima_forecast
)
from train_forecast_model import (
    FORECAST_DAYS, HOLDOUT_DAYS, TARGETS, prepare_forecast_series, auto_arima,
    forecast_cases, evaluate_holdout
)

# --- Configuration ---
PAGE_TITLE = f"COVID-19 in {COUNTRY}: Trends, Forecast and Bias"
LAYOUT = "wide"
INITIAL_SIDEBAR_STATE = "expanded"

# --- 1. Report Configuration and Title ---
st.set_page_config(
    page_title=PAGE_TITLE,
    layout=LAYOUT,
    initial_sidebar_state=INITIAL_SIDEBAR_STATE
)

st.title(f"🦠 COVID-19 in {COUNTRY}")
st.markdown("---")


# --- 2. Load Data and Saved Forecast ---
covid_data = load_data(CONFIRMED_URL, DEATHS_URL, COUNTRY)
saved_bundle = load_forecast_model(MODEL_FILE)

# --- 3. Report Window (Sidebar) ---
date_range = setup_sidebar_filters(covid_data)

filtered_data = covid_data[
    (covid_data['date'] >= date_range[0]) &
    (covid_data['date'] <= date_range[1])
].copy()

if filtered_data.empty:
    st.warning("No data available for the selected date range. Please widen the range in the sidebar.")
    st.stop()


@st.cache_resource(show_spinner=False)
def fit_forecast_in_app(country_data, target, forecast_days):
    """Fits the automatic ARIMA in the app when no matching saved model exists."""
    series = prepare_forecast_series(country_data, target)
    model = auto_arima(series)
    return {
        'model': model,
        'order': model.order,
        'aic': float(model.aic()),
        'target': target,
        'country': country_data['country'].iloc[0],
        'last_observed': series.index.max(),
        'forecast': forecast_cases(model, series, steps=forecast_days, target=target),
        'metrics': evaluate_holdout(series, holdout_days=HOLDOUT_DAYS, target=target),
    }


# --- Section Functions ---
def display_forecast_section(filtered_data, covid_data, saved_bundle):
    """
    Manages the content for the Forecast section.

    Args:
        filtered_data (pandas.DataFrame): Data in the report window.
        covid_data (pandas.DataFrame): The full single-country data.
        saved_bundle (dict or None): Bundle saved by `train_forecast_model.py`.
    """
    st.header("🔮 Case Count Forecast (ARIMA)")
    st.write("The ARIMA order is chosen automatically by `pmdarima.auto_arima`: unit-root tests select the number of differences and a stepwise search selects the autoregressive and moving-average orders by AIC.")

    col_sel1, col_sel2 = st.columns(2)
    with col_sel1:
        target = st.radio(
            "Select Series to Forecast:",
            list(TARGETS.keys()),
            format_func=lambda t: 'Daily New Cases' if t == 'new_cases' else 'Cumulative Confirmed Cases',
            key='forecast_target'
        )
    with col_sel2:
        forecast_days = st.slider("Number of Days to Forecast:", min_value=7, max_value=91, value=FORECAST_DAYS, step=7,
                                  key='forecast_days')

    use_saved = (saved_bundle is not None
                 and saved_bundle['target'] == target
                 and len(saved_bundle['forecast']) == forecast_days
                 and st.checkbox("Use the saved model from 'train_forecast_model.py'", value=True, key='use_saved_model'))

    try:
        if use_saved:
            bundle = saved_bundle
            history = prepare_forecast_series(covid_data, target)
            history = history[history.index <= bundle['last_observed']]
            st.caption(f"Saved model trained on {bundle['trained_at']:%Y-%m-%d %H:%M}.")
        else:
            with st.spinner("Selecting and fitting the ARIMA model... This may take a moment."):
                bundle = fit_forecast_in_app(filtered_data, target, forecast_days)
            history = prepare_forecast_series(filtered_data, target)
    except ValueError as e:
        st.warning(f"Cannot forecast for the selected period: {e}. Please select a longer date range.")
        return

    display_arima_forecast(history, bundle)
    st.caption("*(The forecast extrapolates the reported series. It inherits every bias of the reported counts discussed in the Bias & Limitations section.)*")
    st.markdown("---")


def display_bias_section(data):
    """
    Discusses the biases in the reported counts, quantified on the data.

    Args:
        data (pandas.DataFrame): Data in the report window.
    """
    st.header("⚖️ Bias & Limitations")
    artifacts = summarize_reporting_artifacts(data)

    col_metrics1, col_metrics2, col_metrics3 = st.columns(3)
    with col_metrics1:
        st.metric(label="Downward Revisions", value=f"{artifacts['downward_revisions']}",
                  help="Days on which the cumulative case count decreased.")
    with col_metrics2:
        st.metric(label="Zero-Report Days", value=f"{artifacts['zero_report_days']}",
                  help="Days after the first case with no new cases reported.")
    with col_metrics3:
        ratio = artifacts['weekday_ratio']
        st.metric(label="Weekday Swing", value="n/a" if pd.isna(ratio) else f"{ratio:.2f}x",
                  help="Highest average weekday count divided by the lowest.")

    st.markdown(
        """
        #### Testing and ascertainment bias
        Confirmed cases count **positive tests**, not infections. When testing capacity is limited, or concentrated in cities
        and among symptomatic people, many infections are never confirmed. Growth in the confirmed series therefore mixes
        real spread with expanding testing, and comparisons across periods with different testing levels are biased.

        #### Under-counting of deaths
        Deaths are only recorded as COVID-19 deaths when they are certified as such. Deaths at home, in rural areas or
        without a test are likely missed, so both the death series and the case fatality rate are affected: the rate is
        inflated by missed mild cases and deflated by missed deaths.
        """
    )
    st.info(f"Latest reported case fatality rate: **{artifacts['latest_case_fatality_rate']:.2f}%**.")

    st.markdown(
        """
        #### Reporting artefacts
        Counts are attributed to the day they are **reported**, not the day of infection or testing. Reporting offices
        process fewer results on some days of the week, backlogs are cleared in single-day spikes, and cumulative totals
        are sometimes revised downwards. Downward revisions are clipped to zero in the daily series, so those days
        understate the change.
        """
    )
    weekday_means = artifacts['weekday_means']
    if not weekday_means.empty:
        st.bar_chart(weekday_means.rename('Average New Cases'))
        st.caption(f"Average daily new cases by weekday. The lowest reporting day is **{artifacts['lowest_weekday']}**.")

    st.markdown(
        """
        #### Model assumptions
        ARIMA extrapolates the statistical structure of the past series. It does not know about lockdowns, variants,
        vaccination or changes in testing policy, and its confidence interval only reflects noise in the reported series,
        not the biases above. The forecast should be read as the continuation of the current reported trend.
        """
    )
    st.markdown("---")


def display_about_section():
    """Displays information about the report, the data source and preprocessing."""
    st.header("About This Report")
    st.markdown(
        f"""
        **Data Source:**
        COVID-19 Data Repository by the Center for Systems Science and Engineering (CSSE) at Johns Hopkins University:
        [https://github.com/CSSEGISandData/COVID-19](https://github.com/CSSEGISandData/COVID-19)

        - Confirmed cases: `{CONFIRMED_URL}`
        - Deaths: `{DEATHS_URL}`

        **Preprocessing Steps:**
        - **Reshaping:** The wide tables (one column per date) are melted into a long table with one row per region and date.
        - **Date Parsing:** Column headers such as `1/22/20` are parsed into dates.
        - **Aggregation:** Provinces/states are summed into one row per country and date.
        - **Join:** Confirmed cases and deaths are joined on country and date.
        - **Differencing:** Daily new cases and deaths are the day-over-day change of the cumulative totals; negative changes are set to 0.
        - **Filtering:** Only rows for **{COUNTRY}** are kept.
        """
    )
    st.markdown("---")


# --- Main Application Flow (using sidebar navigation) ---
PAGES = {
    "📊 Data Overview": "data_overview",
    "📈 Trends": "trends",
    "🔮 Forecast": "forecast",
    "⚖️ Bias & Limitations": "bias",
    "ℹ️ About": "about"
}

st.sidebar.title("Report Navigation")
selected_page = st.sidebar.radio("Go to:", list(PAGES.keys()))

if selected_page == "📊 Data Overview":
    st.header("📊 Data Overview & Key Statistics")
    st.write(f"Reported COVID-19 figures for **{COUNTRY}** from **{date_range[0].strftime('%Y-%m-%d')}** to **{date_range[1].strftime('%Y-%m-%d')}**.")
    display_summary_metrics(filtered_data)
    display_raw_data_sample(filtered_data)
    display_summary_statistics(filtered_data)
    display_data_dictionary()

elif selected_page == "📈 Trends":
    st.header("📈 Reported Trends")
    plot_cumulative_trends(filtered_data)
    plot_daily_new_cases(filtered_data)
    plot_time_series_decomposition(filtered_data)

elif selected_page == "🔮 Forecast":
    display_forecast_section(filtered_data, covid_data, saved_bundle)

elif selected_page == "⚖️ Bias & Limitations":
    display_bias_section(filtered_data)

elif selected_page == "ℹ️ About":
    display_about_section()

# This file contains all functions responsible for generating visualizations
# for the India COVID-19 report. Figure construction is kept apart from the
# Streamlit display calls so the figures can be reused outside the app.

import streamlit as st
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
import plotly.express as px
from statsmodels.tsa.seasonal import STL # For time series decomposition

from utils import ROLLING_WINDOW

METRIC_LABELS = {
    'confirmed': 'Cumulative Confirmed Cases',
    'deaths': 'Cumulative Deaths',
    'new_cases': 'Daily New Cases',
    'new_deaths': 'Daily New Deaths',
}

def plot_matplotlib_figure(fig):
    """
    Helper function to display a Matplotlib figure in Streamlit and close it.
    Args:
        fig (matplotlib.figure.Figure): The figure object to display.
    """
    fig.tight_layout() # Adjust layout to prevent labels from overlapping
    st.pyplot(fig)
    plt.close(fig) # Close the figure to free up memory

def display_summary_metrics(data):
    """
    Displays key headline numbers at the top of the Data Overview section.

    Args:
        data (pandas.DataFrame): The single-country data for the report window.
    """
    st.subheader("Summary Metrics for the Selected Period")
    latest = data.sort_values('date').iloc[-1]
    peak = data.loc[data['new_cases'].idxmax()]

    col_metrics1, col_metrics2, col_metrics3, col_metrics4 = st.columns(4)
    with col_metrics1:
        st.metric(label="Confirmed Cases (Latest)", value=f"{int(latest['confirmed']):,}",
                  help="Cumulative confirmed cases on the last day of the selected period.")
    with col_metrics2:
        st.metric(label="Deaths (Latest)", value=f"{int(latest['deaths']):,}",
                  help="Cumulative reported deaths on the last day of the selected period.")
    with col_metrics3:
        st.metric(label="Case Fatality Rate", value=f"{latest['case_fatality_rate']:.2f}%",
                  help="Reported deaths per 100 confirmed cases. Sensitive to testing coverage.")
    with col_metrics4:
        st.metric(label="Peak Daily New Cases", value=f"{int(peak['new_cases']):,}",
                  help=f"Highest single-day count, reported on {peak['date']:%Y-%m-%d}.")

    col_metrics5, col_metrics6 = st.columns(2)
    with col_metrics5:
        st.metric(label="New Cases in Period", value=f"{int(data['new_cases'].sum()):,}")
    with col_metrics6:
        st.metric(label="Average Daily New Cases", value=f"{data['new_cases'].mean():,.0f}")
    st.markdown("---")

def display_raw_data_sample(data):
    """
    Displays the last rows of the prepared data.

    Args:
        data (pandas.DataFrame): The data to display.
    """
    st.subheader("Prepared Data Sample")
    st.write("The most recent rows after reshaping, joining and differencing the raw time series.")
    st.dataframe(data.tail(10))
    st.caption(f"Displaying the last 10 of {len(data)} daily rows.")
    st.markdown("---")

def display_summary_statistics(data):
    """
    Displays descriptive statistics for numerical columns.
    """
    st.subheader("Summary Statistics for Numerical Data")
    st.write("Descriptive statistics (count, mean, std, min, max, quartiles) for the numerical columns in the selected period.")
    st.dataframe(data.describe().transpose())
    st.markdown("---")

def display_data_dictionary():
    """Displays a description of every column in the prepared data."""
    st.subheader("Data Dictionary")
    st.markdown(
        """
        - **`country`:** Country/Region name as reported by Johns Hopkins CSSE (provinces are summed into the country).
        - **`date`:** Reporting date.
        - **`confirmed`:** Cumulative confirmed cases.
        - **`deaths`:** Cumulative reported deaths.
        - **`new_cases`:** Daily change in `confirmed`; downward revisions are set to 0.
        - **`new_deaths`:** Daily change in `deaths`; downward revisions are set to 0.
        - **`new_cases_7day_avg`, `new_deaths_7day_avg`:** Trailing 7-day averages of the daily counts.
        - **`case_fatality_rate`:** `deaths / confirmed * 100`.
        """
    )
    st.markdown("---")

def build_cumulative_trends_figure(data, log_scale=False):
    """
    Creates the cumulative confirmed cases and deaths chart.

    Args:
        data (pandas.DataFrame): Single-country data.
        log_scale (bool): Use a logarithmic y axis.

    Returns:
        matplotlib.figure.Figure: Figure with one axis per cumulative metric.
    """
    country = data['country'].iloc[0]
    fig, axes = plt.subplots(1, 2, figsize=(14, 6))
    for ax, metric, color in zip(axes, ['confirmed', 'deaths'], ['tab:blue', 'tab:red']):
        sns.lineplot(data=data, x='date', y=metric, color=color, ax=ax)
        ax.set_title(f'{METRIC_LABELS[metric]} in {country}')
        ax.set_xlabel('Date')
        ax.set_ylabel(METRIC_LABELS[metric])
        ax.tick_params(axis='x', rotation=45)
        if log_scale:
            ax.set_yscale('symlog')
        else:
            ax.ticklabel_format(style='plain', axis='y') # Prevent scientific notation on Y-axis
    return fig

def plot_cumulative_trends(data):
    """
    Displays the cumulative trends chart.

    Args:
        data (pandas.DataFrame): Single-country data for the report window.
    """
    st.subheader("Cumulative Confirmed Cases and Deaths")
    st.write("The running totals reported since the start of the series. A logarithmic scale makes the growth phases easier to compare.")
    log_scale = st.checkbox("Use logarithmic scale", value=False, key='cumulative_log_scale')

    with st.spinner("Generating cumulative trends plot..."):
        plot_matplotlib_figure(build_cumulative_trends_figure(data, log_scale=log_scale))
    st.markdown("---")

def build_daily_new_cases_figure(data):
    """
    Creates the daily new cases chart: bars with the rolling average overlaid.

    Returns:
        matplotlib.figure.Figure: The chart.
    """
    country = data['country'].iloc[0]
    fig, ax = plt.subplots(figsize=(12, 6))
    ax.bar(data['date'], data['new_cases'], color='lightsteelblue', label='Daily New Cases')
    sns.lineplot(data=data, x='date', y='new_cases_7day_avg', color='navy',
                 label=f'{ROLLING_WINDOW}-Day Rolling Average', ax=ax)
    ax.set_title(f'Daily New Cases in {country}')
    ax.set_xlabel('Date')
    ax.set_ylabel('New Cases')
    ax.tick_params(axis='x', rotation=45)
    ax.ticklabel_format(style='plain', axis='y')
    ax.legend()
    return fig

def build_interactive_daily_figure(data):
    """Plotly line chart of the daily new cases and deaths rolling averages."""
    long = data.melt(id_vars=['date'], value_vars=['new_cases_7day_avg', 'new_deaths_7day_avg'],
                     var_name='metric', value_name='count')
    long['metric'] = long['metric'].map({
        'new_cases_7day_avg': 'New Cases (7-day avg)',
        'new_deaths_7day_avg': 'New Deaths (7-day avg)',
    })
    fig = px.line(long, x='date', y='count', color='metric', log_y=True,
                  title=f"Daily New Cases and Deaths in {data['country'].iloc[0]}",
                  labels={'date': 'Date', 'count': 'Count (log scale)', 'metric': 'Metric'})
    fig.update_layout(hovermode='x unified')
    return fig

def plot_daily_new_cases(data):
    """
    Displays the daily new cases chart, with an optional interactive view.

    Args:
        data (pandas.DataFrame): Single-country data for the report window.
    """
    st.subheader("Daily New Cases")
    st.write(f"Daily counts are derived by differencing the cumulative series. The {ROLLING_WINDOW}-day rolling average smooths out the weekly reporting cycle.")
    plot_type = st.radio("Select Plot Type:", ('Static', 'Interactive'), key='daily_plot_type', horizontal=True,
                         help="The interactive view also shows daily deaths and supports zooming.")

    with st.spinner("Generating daily new cases plot..."):
        if plot_type == 'Static':
            plot_matplotlib_figure(build_daily_new_cases_figure(data))
        else:
            st.plotly_chart(build_interactive_daily_figure(data), use_container_width=True)
    st.markdown("---")

def plot_time_series_decomposition(data):
    """
    Performs and plots STL decomposition of daily new cases with a weekly period.

    Args:
        data (pandas.DataFrame): Single-country data for the report window.
    """
    st.subheader("Weekly Reporting Pattern (STL Decomposition)")
    st.write("Decomposing daily new cases into trend, weekly seasonal and residual components exposes the reporting cycle hidden in the raw counts.")

    series = data.set_index('date')['new_cases'].asfreq('D', fill_value=0)
    period = 7 # Weekly seasonality for daily data
    if len(series) < 2 * period:
        st.info(f"Not enough data points ({len(series)} days) for STL decomposition (requires at least two weeks). Please select a longer date range.")
        st.markdown("---")
        return

    with st.spinner("Decomposing daily new cases..."):
        res = STL(series, period=period, robust=True).fit()
        fig_stl = res.plot()
        fig_stl.set_size_inches(10, 8)
        fig_stl.suptitle(f"STL Decomposition of Daily New Cases for {data['country'].iloc[0]}", y=1.02)
        plot_matplotlib_figure(fig_stl)
    st.markdown("---")

def build_forecast_figure(history, forecast, history_days=180):
    """
    Plots the recent history with the forecast and its confidence band.

    Args:
        history (pandas.Series): Observed series the model was fitted on.
        forecast (pandas.DataFrame): Output of `forecast_cases`.
        history_days (int): Number of trailing observed days to draw.

    Returns:
        matplotlib.figure.Figure: The chart.
    """
    label = METRIC_LABELS.get(history.name, str(history.name).replace('_', ' ').title())
    recent = history.iloc[-history_days:]

    fig, ax = plt.subplots(figsize=(12, 6))
    ax.plot(recent.index, recent.values, label='Historical Data', color='tab:blue')
    ax.plot(forecast.index, forecast['forecast'], label='ARIMA Forecast', color='red', linestyle='--')
    ax.fill_between(forecast.index, forecast['lower_ci'], forecast['upper_ci'], color='red', alpha=0.15,
                    label='Confidence Interval')
    ax.set_title(f'{label} Forecast')
    ax.set_xlabel('Date')
    ax.set_ylabel(label)
    ax.tick_params(axis='x', rotation=45)
    ax.ticklabel_format(style='plain', axis='y')
    ax.legend()
    return fig

def display_arima_forecast(history, bundle):
    """
    Displays the forecast chart, table, selected order and hold-out metrics.

    Args:
        history (pandas.Series): Observed series the model was fitted on.
        bundle (dict): Forecast bundle as produced by `train_and_save_model`.
    """
    order = bundle['order']
    st.write(f"Selected model: **ARIMA{order}** (AIC {bundle['aic']:,.1f}), fitted on data up to **{bundle['last_observed']:%Y-%m-%d}**.")

    plot_matplotlib_figure(build_forecast_figure(history, bundle['forecast']))

    metrics = bundle.get('metrics')
    if metrics:
        st.write(f"#### Hold-out Performance (last {metrics['holdout_days']} days)")
        col_metrics1, col_metrics2, col_metrics3 = st.columns(3)
        with col_metrics1:
            st.metric(label="Mean Absolute Error (MAE)", value=f"{metrics['mae']:,.0f}")
        with col_metrics2:
            st.metric(label="Root Mean Squared Error (RMSE)", value=f"{metrics['rmse']:,.0f}")
        with col_metrics3:
            st.metric(label="R-squared (R²)", value=f"{metrics['r2']:.2f}")
        st.caption(f"The hold-out model was selected on the training window only and chose ARIMA{metrics['order']}.")

    with st.expander("Forecast Table"):
        st.dataframe(bundle['forecast'].round(0).astype('int64'))

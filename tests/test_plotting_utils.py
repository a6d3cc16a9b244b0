import matplotlib.pyplot as plt
import pandas as pd
import pytest

from plotting_utils import (
    build_cumulative_trends_figure, build_daily_new_cases_figure,
    build_interactive_daily_figure, build_forecast_figure
)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')


def test_cumulative_trends_figure_has_cases_and_deaths_axes(india_data):
    fig = build_cumulative_trends_figure(india_data)

    titles = [ax.get_title() for ax in fig.axes]
    assert titles == ['Cumulative Confirmed Cases in India', 'Cumulative Deaths in India']
    assert all(ax.get_yscale() == 'linear' for ax in fig.axes)


def test_cumulative_trends_figure_log_scale(india_data):
    fig = build_cumulative_trends_figure(india_data, log_scale=True)

    assert all(ax.get_yscale() == 'symlog' for ax in fig.axes)


def test_daily_new_cases_figure_draws_bars_and_rolling_average(india_data):
    fig = build_daily_new_cases_figure(india_data)
    ax = fig.axes[0]

    assert ax.get_title() == 'Daily New Cases in India'
    assert len(ax.patches) == len(india_data)
    labels = [text.get_text() for text in ax.get_legend().get_texts()]
    assert '7-Day Rolling Average' in labels
    assert 'Daily New Cases' in labels


def test_interactive_daily_figure_has_one_trace_per_metric(india_data):
    fig = build_interactive_daily_figure(india_data)

    assert sorted(trace.name for trace in fig.data) == ['New Cases (7-day avg)', 'New Deaths (7-day avg)']
    assert fig.layout.yaxis.type == 'log'


def test_forecast_figure_limits_history(india_data):
    history = india_data.set_index('date')['new_cases'].astype(float)
    history.name = 'new_cases'
    future = pd.date_range(history.index[-1] + pd.Timedelta(days=1), periods=5, freq='D')
    forecast = pd.DataFrame({'forecast': [10.0] * 5, 'lower_ci': [5.0] * 5, 'upper_ci': [15.0] * 5}, index=future)

    fig = build_forecast_figure(history, forecast, history_days=30)
    ax = fig.axes[0]

    assert ax.get_title() == 'Daily New Cases Forecast'
    assert len(ax.lines[0].get_xdata()) == 30
    assert len(ax.lines[1].get_xdata()) == 5

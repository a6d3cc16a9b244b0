import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from utils import ID_COLUMNS, prepare_covid_data, filter_country

START_DATE = '2020-01-22'
N_DAYS = 120
REVISION_DAY = 60
LOW_WEEKDAY = 'Sunday'


def _jhu_date_columns(dates):
    return [f"{d.month}/{d.day}/{d:%y}" for d in dates]


def _daily_cases(rng, dates):
    trend = np.linspace(0, 400, len(dates)) + 50 * np.sin(np.arange(len(dates)) / 9)
    weekly = np.where(dates.day_name() == LOW_WEEKDAY, 0.4, 1.0)
    noise = rng.normal(0, 10, len(dates))
    cases = np.clip((trend + 20) * weekly + noise, 0, None).round()
    cases[:5] = 0
    return cases


def make_wide_tables(n_days=N_DAYS):
    """Synthetic confirmed and deaths tables in the JHU wide layout."""
    rng = np.random.default_rng(7)
    dates = pd.date_range(START_DATE, periods=n_days, freq='D')
    date_columns = _jhu_date_columns(dates)

    india_confirmed = np.cumsum(_daily_cases(rng, dates))
    # A downward revision of the cumulative count
    india_confirmed[REVISION_DAY] = india_confirmed[REVISION_DAY - 1] - 25
    india_deaths = np.floor(india_confirmed * 0.015)

    aus_confirmed = np.cumsum(rng.integers(0, 20, n_days))
    aus_deaths = np.floor(aus_confirmed * 0.01)

    rows_confirmed = [
        [np.nan, 'India', 20.59, 78.96, *india_confirmed],
        ['New South Wales', 'Australia', -33.87, 151.21, *aus_confirmed],
        ['Victoria', 'Australia', -37.81, 144.96, *aus_confirmed],
    ]
    rows_deaths = [
        [np.nan, 'India', 20.59, 78.96, *india_deaths],
        ['New South Wales', 'Australia', -33.87, 151.21, *aus_deaths],
        ['Victoria', 'Australia', -37.81, 144.96, *aus_deaths],
    ]
    columns = ID_COLUMNS + date_columns
    return pd.DataFrame(rows_confirmed, columns=columns), pd.DataFrame(rows_deaths, columns=columns)


@pytest.fixture
def wide_tables():
    return make_wide_tables()


@pytest.fixture
def csv_paths(tmp_path, wide_tables):
    confirmed_wide, deaths_wide = wide_tables
    confirmed_path = tmp_path / 'time_series_covid19_confirmed_global.csv'
    deaths_path = tmp_path / 'time_series_covid19_deaths_global.csv'
    confirmed_wide.to_csv(confirmed_path, index=False)
    deaths_wide.to_csv(deaths_path, index=False)
    return str(confirmed_path), str(deaths_path)


@pytest.fixture
def prepared_data(wide_tables):
    return prepare_covid_data(*wide_tables)


@pytest.fixture
def india_data(prepared_data):
    return filter_country(prepared_data, 'India')

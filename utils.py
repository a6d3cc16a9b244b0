# This file contains utility functions for fetching, reshaping and loading
# the Johns Hopkins COVID-19 time series used across the India report app.

import os
from urllib.error import HTTPError, URLError

import streamlit as st
import pandas as pd
import joblib

# --- Configuration ---
JHU_BASE_URL = ("https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
                "csse_covid_19_data/csse_covid_19_time_series/")
CONFIRMED_URL = os.getenv("COVID_CONFIRMED_URL") or JHU_BASE_URL + "time_series_covid19_confirmed_global.csv"
DEATHS_URL = os.getenv("COVID_DEATHS_URL") or JHU_BASE_URL + "time_series_covid19_deaths_global.csv"
MODEL_FILE = os.getenv("COVID_FORECAST_MODEL_FILE") or 'trained_forecast_model.pkl'

COUNTRY = 'India'
ID_COLUMNS = ['Province/State', 'Country/Region', 'Lat', 'Long']
JHU_DATE_FORMAT = '%m/%d/%y'
ROLLING_WINDOW = 7
WEEKDAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


def fetch_time_series(url):
    """
    Downloads one JHU wide-format time series CSV.

    The CSV has one row per province/country and one column per date.
    Local file paths are accepted as well as URLs.

    Args:
        url (str): URL or path of the CSV file.

    Returns:
        pandas.DataFrame: The raw wide table.

    Raises:
        ValueError: If the id columns or the date columns are missing.
    """
    wide = pd.read_csv(url)

    missing = [col for col in ID_COLUMNS if col not in wide.columns]
    if missing:
        raise ValueError(f"Time series CSV is missing required columns: {', '.join(missing)}")
    if len(wide.columns) == len(ID_COLUMNS):
        raise ValueError("Time series CSV contains no date columns")
    return wide


def reshape_time_series(wide, value_name):
    """
    Pivots a wide JHU table into a long table with one row per country and date.

    Provinces/states are summed into their country.

    Args:
        wide (pandas.DataFrame): Raw table as returned by `fetch_time_series`.
        value_name (str): Name of the value column, e.g. 'confirmed' or 'deaths'.

    Returns:
        pandas.DataFrame: Columns `country`, `date`, `value_name`.
    """
    long = wide.melt(id_vars=ID_COLUMNS, var_name='date', value_name=value_name)
    long['date'] = pd.to_datetime(long['date'], format=JHU_DATE_FORMAT)
    long[value_name] = pd.to_numeric(long[value_name], errors='coerce').fillna(0)
    long = long.rename(columns={'Country/Region': 'country'})

    long = long.groupby(['country', 'date'], as_index=False)[value_name].sum()
    long[value_name] = long[value_name].astype('int64')
    return long


def merge_case_and_death_series(confirmed_long, deaths_long):
    """
    Joins the long confirmed and deaths tables on country and date.

    Args:
        confirmed_long (pandas.DataFrame): Output of `reshape_time_series(..., 'confirmed')`.
        deaths_long (pandas.DataFrame): Output of `reshape_time_series(..., 'deaths')`.

    Returns:
        pandas.DataFrame: Columns `country`, `date`, `confirmed`, `deaths`, sorted by country and date.
    """
    merged = confirmed_long.merge(deaths_long, on=['country', 'date'], how='inner', validate='one_to_one')
    return merged.sort_values(by=['country', 'date']).reset_index(drop=True)


def add_daily_counts(data):
    """
    Differences the cumulative series into daily counts and adds derived metrics.

    New columns:
    - 'new_cases', 'new_deaths': day-over-day change of the cumulative series. The
      first row of each country keeps its cumulative value; downward revisions are
      clipped to zero.
    - 'new_cases_7day_avg', 'new_deaths_7day_avg': rolling means of the daily counts.
    - 'case_fatality_rate': deaths per 100 confirmed cases.

    Args:
        data (pandas.DataFrame): Merged long table with `confirmed` and `deaths`.

    Returns:
        pandas.DataFrame: A copy of `data` with the new columns.
    """
    data = data.sort_values(by=['country', 'date']).copy()
    grouped = data.groupby('country')

    for cumulative_col, daily_col in (('confirmed', 'new_cases'), ('deaths', 'new_deaths')):
        daily = grouped[cumulative_col].diff().fillna(data[cumulative_col])
        data[daily_col] = daily.clip(lower=0).astype('int64')
        data[f'{daily_col}_7day_avg'] = data.groupby('country')[daily_col].transform(
            lambda x: x.rolling(window=ROLLING_WINDOW, min_periods=1).mean())

    data['case_fatality_rate'] = (data['deaths'] / data['confirmed'].where(data['confirmed'] > 0)) * 100
    data['case_fatality_rate'] = data['case_fatality_rate'].fillna(0)
    return data.reset_index(drop=True)


def filter_country(data, country=COUNTRY):
    """
    Returns the rows of one country.

    Raises:
        ValueError: If the country does not appear in the data.
    """
    country_data = data[data['country'] == country]
    if country_data.empty:
        raise ValueError(f"No data found for country '{country}'")
    return country_data.reset_index(drop=True)


def prepare_covid_data(confirmed_wide, deaths_wide):
    """Reshapes, joins and differences the two raw JHU tables."""
    confirmed_long = reshape_time_series(confirmed_wide, 'confirmed')
    deaths_long = reshape_time_series(deaths_wide, 'deaths')
    merged = merge_case_and_death_series(confirmed_long, deaths_long)
    return add_daily_counts(merged)


def summarize_reporting_artifacts(country_data):
    """
    Quantifies reporting artefacts that bias the case and death counts.

    Args:
        country_data (pandas.DataFrame): Prepared data for a single country.

    Returns:
        dict: Keys 'downward_revisions', 'zero_report_days', 'weekday_means',
              'lowest_weekday', 'weekday_ratio', 'latest_case_fatality_rate' and
              'first_case_date'.
    """
    country_data = country_data.sort_values('date')
    revisions = int((country_data['confirmed'].diff() < 0).sum())

    after_first_case = country_data[country_data['confirmed'] > 0]
    first_case_date = after_first_case['date'].min() if not after_first_case.empty else None
    zero_report_days = int((after_first_case['new_cases'].iloc[1:] == 0).sum())

    weekday_means = (after_first_case.groupby(after_first_case['date'].dt.day_name())['new_cases']
                     .mean()
                     .reindex(WEEKDAYS)
                     .dropna())
    lowest_weekday = weekday_means.idxmin() if not weekday_means.empty else None
    if not weekday_means.empty and weekday_means.min() > 0:
        weekday_ratio = float(weekday_means.max() / weekday_means.min())
    else:
        weekday_ratio = float('nan')

    return {
        'downward_revisions': revisions,
        'zero_report_days': zero_report_days,
        'weekday_means': weekday_means,
        'lowest_weekday': lowest_weekday,
        'weekday_ratio': weekday_ratio,
        'latest_case_fatality_rate': float(country_data['case_fatality_rate'].iloc[-1]),
        'first_case_date': first_case_date,
    }


@st.cache_data
def load_data(confirmed_url=CONFIRMED_URL, deaths_url=DEATHS_URL, country=COUNTRY):
    """
    Fetches both JHU time series and returns the prepared data for one country.

    Args:
        confirmed_url (str): URL or path of the confirmed cases CSV.
        deaths_url (str): URL or path of the deaths CSV.
        country (str): Country to keep.

    Returns:
        pandas.DataFrame: The prepared single-country data.
    """
    with st.spinner("Downloading and preparing the Johns Hopkins time series... This may take a moment."):
        try:
            confirmed_wide = fetch_time_series(confirmed_url)
            deaths_wide = fetch_time_series(deaths_url)
            data = prepare_covid_data(confirmed_wide, deaths_wide)
            return filter_country(data, country)
        except (HTTPError, URLError) as e:
            st.error(f"Error: could not download the time series ({e}). Please check your network connection.")
            st.stop()
        except FileNotFoundError as e:
            st.error(f"Error: '{e.filename}' not found.")
            st.stop()
        except ValueError as e:
            st.error(f"The downloaded data could not be prepared: {e}")
            st.stop()


@st.cache_resource
def load_forecast_model(model_path=MODEL_FILE):
    """
    Loads the forecast bundle saved by `train_forecast_model.py`.

    Returns:
        dict or None: The bundle, or None if the file does not exist.
    """
    try:
        bundle = joblib.load(model_path)
    except FileNotFoundError:
        st.sidebar.warning(f"'{model_path}' not found. The forecast will be fitted in the app. "
                           "Run 'train_forecast_model.py' to precompute it.")
        return None
    st.sidebar.success("Saved forecast model loaded successfully!")
    return bundle


def setup_sidebar_filters(data):
    """
    Sets up the date range filter in the Streamlit sidebar.

    Args:
        data (pandas.DataFrame): The prepared single-country data.

    Returns:
        tuple: (start_date, end_date) selected on the slider.
    """
    st.sidebar.header("📊 Report Window")
    st.sidebar.write(f"Country: **{data['country'].iloc[0]}**")

    min_date_data = data['date'].min().to_pydatetime()
    max_date_data = data['date'].max().to_pydatetime()
    date_range = st.sidebar.slider(
        "Select Date Range:",
        min_value=min_date_data,
        max_value=max_date_data,
        value=(min_date_data, max_date_data),
        format="YYYY-MM-DD",
        help="Drag the ends of the slider to narrow the period shown in the charts."
    )

    st.sidebar.markdown("---")
    st.sidebar.info(f"Data last updated: **{data['date'].max().strftime('%Y-%m-%d')}**")

    if st.sidebar.button("Reset Filters"):
        st.session_state.clear()
        st.rerun()
    return date_range

"""
    This script fits an ARIMA model to India's daily COVID-19 case counts.
    The order (p, d, q) is selected automatically with pmdarima's auto_arima.
    It evaluates the model on a hold-out window, refits on the full series,
    forecasts the coming days and saves everything in one bundle using joblib.
"""

import sys
import datetime
from urllib.error import URLError

import pandas as pd
import numpy as np
import joblib
import pmdarima as pm # Auto ARIMA for automatic parameter selection
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score

from utils import CONFIRMED_URL, DEATHS_URL, COUNTRY, MODEL_FILE, fetch_time_series, prepare_covid_data, filter_country

# --- Forecast configuration ---
FORECAST_TARGET = 'new_cases'
TARGETS = {'new_cases': 'daily', 'confirmed': 'cumulative'}
FORECAST_DAYS = 28
HOLDOUT_DAYS = 14
MAX_P = 3
MAX_D = 2
MAX_Q = 3
CONFIDENCE_LEVEL = 0.95
MIN_OBSERVATIONS = 30


def prepare_forecast_series(country_data, target=FORECAST_TARGET):
    """
    Builds the daily-frequency series the ARIMA model is fitted on.

    Args:
        country_data (pandas.DataFrame): Prepared data for a single country.
        target (str): 'new_cases' or 'confirmed'.

    Returns:
        pandas.Series: Float series indexed by date with a daily frequency.

    Raises:
        ValueError: For an unknown target or a series that is too short.
    """
    if target not in TARGETS:
        raise ValueError(f"Unknown forecast target '{target}'. Choose one of: {', '.join(TARGETS)}")

    series = country_data.set_index('date')[target].sort_index().astype(float)
    if TARGETS[target] == 'daily':
        series = series.asfreq('D', fill_value=0.0)
    else:
        series = series.asfreq('D').ffill()
    series.name = target

    if len(series) < MIN_OBSERVATIONS:
        raise ValueError(f"At least {MIN_OBSERVATIONS} daily observations are needed, got {len(series)}")
    return series


def auto_arima(series, max_p=MAX_P, max_d=MAX_D, max_q=MAX_Q):
    """
    Selects and fits a non-seasonal ARIMA with pmdarima's stepwise search.

    Args:
        series (pandas.Series): Series returned by `prepare_forecast_series`.
        max_p (int): Largest autoregressive order.
        max_d (int): Largest number of differences.
        max_q (int): Largest moving-average order.

    Returns:
        pmdarima.arima.ARIMA: The fitted model; its order is `model.order`.
    """
    return pm.auto_arima(
        series,
        max_p=max_p,
        max_d=max_d,
        max_q=max_q,
        seasonal=False,
        stepwise=True,
        suppress_warnings=True,
        error_action='ignore',
        trace=False
    )


def forecast_cases(model, series, steps=FORECAST_DAYS, target=FORECAST_TARGET, alpha=1 - CONFIDENCE_LEVEL):
    """
    Forecasts the `steps` days following `series` with a confidence band.

    Daily counts are clipped at zero and cumulative counts at the last observed
    value, since neither can fall below those levels.

    Args:
        model (pmdarima.arima.ARIMA): Model fitted on `series`.
        series (pandas.Series): The observed series.

    Returns:
        pandas.DataFrame: Columns 'forecast', 'lower_ci', 'upper_ci', indexed by date.
    """
    predictions, conf_int = model.predict(n_periods=steps, return_conf_int=True, alpha=alpha)
    conf_int = np.asarray(conf_int)

    forecast_dates = pd.date_range(start=series.index.max() + pd.Timedelta(days=1), periods=steps, freq='D',
                                   name='date')
    forecast = pd.DataFrame({
        'forecast': np.asarray(predictions, dtype=float),
        'lower_ci': conf_int[:, 0],
        'upper_ci': conf_int[:, 1],
    }, index=forecast_dates)

    floor = 0.0 if TARGETS[target] == 'daily' else float(series.iloc[-1])
    return forecast.clip(lower=floor)


def evaluate_holdout(series, holdout_days=HOLDOUT_DAYS, target=FORECAST_TARGET,
                     max_p=MAX_P, max_d=MAX_D, max_q=MAX_Q):
    """
    Scores the automatic ARIMA on the last `holdout_days` of the series.

    Returns:
        dict: 'order', 'mae', 'rmse', 'r2' and 'holdout_days'.
    """
    if holdout_days >= len(series) - MIN_OBSERVATIONS // 2:
        raise ValueError(f"Hold-out window of {holdout_days} days leaves too little training data")

    train, test = series.iloc[:-holdout_days], series.iloc[-holdout_days:]
    model = auto_arima(train, max_p=max_p, max_d=max_d, max_q=max_q)
    predictions = forecast_cases(model, train, steps=holdout_days, target=target)['forecast']

    mse = mean_squared_error(test, predictions)
    return {
        'order': model.order,
        'mae': mean_absolute_error(test, predictions),
        'rmse': float(np.sqrt(mse)),
        'r2': r2_score(test, predictions),
        'holdout_days': holdout_days,
    }


def train_and_save_model(country_data, target=FORECAST_TARGET, model_path=MODEL_FILE,
                         forecast_days=FORECAST_DAYS, holdout_days=HOLDOUT_DAYS):
    """
    Evaluates, fits and forecasts, then saves the bundle with joblib.

    Returns:
        dict: The saved bundle.
    """
    print(f"\n--- Training forecast model for {target} ---")
    series = prepare_forecast_series(country_data, target)
    print(f"Series: {len(series)} days from {series.index.min():%Y-%m-%d} to {series.index.max():%Y-%m-%d}")

    metrics = evaluate_holdout(series, holdout_days=holdout_days, target=target)
    print(f"Hold-out performance over the last {holdout_days} days (ARIMA{metrics['order']}):")
    print(f"  MAE: {metrics['mae']:.2f}")
    print(f"  RMSE: {metrics['rmse']:.2f}")
    print(f"  R-squared: {metrics['r2']:.2f}")

    model = auto_arima(series)
    forecast = forecast_cases(model, series, steps=forecast_days, target=target)
    print(f"Selected ARIMA{model.order} on the full series (AIC {model.aic():.1f})")

    bundle = {
        'model': model,
        'order': model.order,
        'aic': float(model.aic()),
        'target': target,
        'country': country_data['country'].iloc[0],
        'last_observed': series.index.max(),
        'forecast': forecast,
        'metrics': metrics,
        'trained_at': datetime.datetime.now(),
    }
    joblib.dump(bundle, model_path)
    print(f"Model bundle saved to {model_path}")
    print(f"--- Finished training for {target} ---")
    return bundle


def main():
    print("Starting forecast training script...")

    try:
        confirmed_wide = fetch_time_series(CONFIRMED_URL)
        deaths_wide = fetch_time_series(DEATHS_URL)
        print("Data downloaded successfully.")
        country_data = filter_country(prepare_covid_data(confirmed_wide, deaths_wide), COUNTRY)
    except (URLError, FileNotFoundError) as e:
        print(f"Error: could not read the Johns Hopkins time series: {e}")
        return 1
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    bundle = train_and_save_model(country_data)

    print(f"\n{FORECAST_DAYS}-day forecast of {bundle['target']} for {bundle['country']}:")
    print(bundle['forecast'].round(0).to_string())
    print("\nForecast model trained and saved.")
    return 0


if __name__ == "__main__":
    sys.exit(main())

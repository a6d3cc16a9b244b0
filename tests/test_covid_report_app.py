from pathlib import Path

import pandas as pd
import pytest
from streamlit.testing.v1 import AppTest

import utils
from train_forecast_model import FORECAST_DAYS, train_and_save_model

APP_PATH = Path(__file__).resolve().parent.parent / 'covid_report_app.py'


def run_app(monkeypatch, confirmed_path, deaths_path, model_path):
    monkeypatch.setattr(utils, 'CONFIRMED_URL', confirmed_path)
    monkeypatch.setattr(utils, 'DEATHS_URL', deaths_path)
    monkeypatch.setattr(utils, 'MODEL_FILE', model_path)
    at = AppTest.from_file(str(APP_PATH), default_timeout=180)
    at.run()
    return at


@pytest.fixture
def app(tmp_path, monkeypatch, csv_paths):
    return run_app(monkeypatch, csv_paths[0], csv_paths[1], str(tmp_path / 'no_model.pkl'))


@pytest.fixture
def app_with_saved_model(tmp_path, monkeypatch, csv_paths, india_data):
    model_path = str(tmp_path / 'trained_forecast_model.pkl')
    train_and_save_model(india_data, target='new_cases', model_path=model_path, forecast_days=FORECAST_DAYS)
    return run_app(monkeypatch, csv_paths[0], csv_paths[1], model_path)


def go_to(at, page):
    at.sidebar.radio[0].set_value(page).run()
    assert not at.exception


def test_report_opens_on_data_overview(app):
    assert not app.exception
    assert app.title[0].value == '🦠 COVID-19 in India'
    assert app.header[0].value == '📊 Data Overview & Key Statistics'
    assert app.metric[0].label == 'Confirmed Cases (Latest)'
    assert any('not found' in element.value for element in app.sidebar.warning)


def test_trends_page_renders_charts(app):
    go_to(app, '📈 Trends')

    subheaders = [element.value for element in app.subheader]
    assert 'Cumulative Confirmed Cases and Deaths' in subheaders
    assert 'Daily New Cases' in subheaders


def test_forecast_page_fits_model_in_app(app):
    go_to(app, '🔮 Forecast')

    assert any('ARIMA' in element.value for element in app.markdown)
    assert [metric.label for metric in app.metric] == [
        'Mean Absolute Error (MAE)', 'Root Mean Squared Error (RMSE)', 'R-squared (R²)'
    ]
    assert len(app.checkbox) == 0


def test_forecast_page_uses_saved_model(app_with_saved_model):
    at = app_with_saved_model
    assert any('loaded successfully' in element.value for element in at.sidebar.success)

    go_to(at, '🔮 Forecast')

    assert at.checkbox(key='use_saved_model').value is True
    assert any(element.value.startswith('Saved model trained on') for element in at.caption)


def test_forecast_horizon_slider_reaches_saved_horizon(app):
    go_to(app, '🔮 Forecast')
    slider = app.slider(key='forecast_days')

    assert slider.value == FORECAST_DAYS
    assert slider.max == 91
    assert (FORECAST_DAYS - slider.min) % slider.step == 0
    assert (slider.max - slider.min) % slider.step == 0


def test_bias_page_quantifies_reporting_artifacts(app):
    go_to(app, '⚖️ Bias & Limitations')

    metrics = {metric.label: metric.value for metric in app.metric}
    assert metrics['Downward Revisions'] == '1'
    assert metrics['Weekday Swing'].endswith('x')


def test_report_stops_on_malformed_csv(tmp_path, monkeypatch, csv_paths):
    bad_path = tmp_path / 'malformed.csv'
    pd.DataFrame({'Country': ['India'], '1/22/20': [0]}).to_csv(bad_path, index=False)

    at = run_app(monkeypatch, str(bad_path), csv_paths[1], str(tmp_path / 'no_model.pkl'))

    assert not at.exception
    assert 'could not be prepared' in at.error[0].value
    assert len(at.header) == 0

"""Domain services: stock accounting, movements, alerts, forecasting and dashboards."""

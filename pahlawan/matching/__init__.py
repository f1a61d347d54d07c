"""Matching surplus to receivers, re-routing, ranking, forecasting and related services."""
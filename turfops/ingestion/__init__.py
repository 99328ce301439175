"""Ingestion: CSV importers and the OpenWeatherMap forecast client."""

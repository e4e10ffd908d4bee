"""Usage statistics, categories and cached reports."""

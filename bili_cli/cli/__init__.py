"""
Command-line client for the Bilibili web API, built with Typer and Rich.
"""

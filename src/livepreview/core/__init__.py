"""Preview serving core: classification, handles, live documents, strategy."""

"""Reading models and the errors the journal raises or returns."""

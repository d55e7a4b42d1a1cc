"""Host adapters that connect UI toolkits to the engine."""

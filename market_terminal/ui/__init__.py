"""Drawing surfaces, tables and the terminal UI."""

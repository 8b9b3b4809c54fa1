"""Application state: view navigation and the terminal command surface."""

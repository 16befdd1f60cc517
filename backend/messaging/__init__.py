"""Direct messaging backend."""

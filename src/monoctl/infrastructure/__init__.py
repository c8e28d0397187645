"""Infrastructure: project files, package graph, child processes."""

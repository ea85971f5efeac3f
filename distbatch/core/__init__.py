"""Core of the batch builder: build graph, cycle handling and scheduling."""

"""Django project package for the radiology workflow backend."""

# Configuration file for the Sphinx documentation builder.
#
# For the full list of built-in configuration values, see the documentation:
# https://www.sphinx-doc.org/en/master/usage/configuration.html

import os
import sys
from datetime import date

sys.path.insert(0, os.path.abspath("../.."))  # Source code dir relative to this file

from lpd_algorithms import __version__  # noqa: E402

# -- Project information -----------------------------------------------------

project = "lpd_algorithms"
copyright = "2024-{}, Conservation International".format(date.today().year)
author = "Conservation International"
release = __version__

# -- General configuration ---------------------------------------------------

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.autosummary",
    "sphinx.ext.napoleon",
    "sphinx_rtd_theme",
]

autosummary_generate = True

templates_path = ["_templates"]
exclude_patterns = []


# -- Options for HTML output -------------------------------------------------

html_baseurl = os.environ.get("READTHEDOCS_CANONICAL_URL", "")

if os.environ.get("READTHEDOCS", "") == "True":
    html_context = {"READTHEDOCS": True}

html_theme = "sphinx_rtd_theme"

# -- Options for autodoc ----------------------------------------------------

add_module_names = False
autodoc_typehints = "description"
autodoc_class_signature = "separated"

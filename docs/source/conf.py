# Sphinx configuration for the ec2-metadatafs API reference.

import os
import sys
sys.path.insert(0, os.path.abspath('../..'))
import sphinx_rtd_theme

from ec2_metadatafs import __version__

project = 'ec2-metadatafs'
copyright = '2025, Accelerated Cloud Storage'
author = 'Accelerated Cloud Storage'
release = __version__

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',  # Google-style docstrings
]

autodoc_default_options = {
    'members': True,
    'undoc-members': True,
    'exclude-members': 'DEFAULT_DIRECTORY_PATTERNS',
}

# fusepy needs libfuse at import time
autodoc_mock_imports = ['fuse']

templates_path = ['_templates']
exclude_patterns = []

html_theme = 'sphinx_rtd_theme'
html_static_path = ['_static']

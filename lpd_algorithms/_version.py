# This file is auto-generated at build time
# Do not edit this file manually
__version__ = "1.0.0"

# Git information captured at build time
__git_sha__ = "unknown"
__git_date__ = "unknown"

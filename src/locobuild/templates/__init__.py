"""Bundled file templates written by `locobuild init`."""

"""Wealthlink - thrift-cycle savings service.

Members pay a fixed monthly amount, administrators approve each receipt, and
a completed cycle is paid out before the next one begins. Import submodules
explicitly; the package root exports nothing.
"""

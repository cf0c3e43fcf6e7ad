"""Time tracking engine package.

Organized by feature modules (timers, days, blocks, templates) with a thin
Flask controller layer over service/repository layers.
"""

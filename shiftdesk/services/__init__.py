"""Stateful services: shift store, audit workflow, grid projection."""

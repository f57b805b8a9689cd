"""Test package for the Balloon Analogue Risk Task.

Core tests exercise trial generation, the trial state machine, the trial log
and scoring with a fake clock. UI smoke tests run headlessly using pygame's
dummy video driver. To run these tests, execute ``pytest`` from the project
root.
"""

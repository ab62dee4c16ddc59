"""Dinosaur — a didactic operating-system simulator.

Main memory is a row of 1 KB cells shared by simulated processes and
placed with worst fit, so fragmentation can be watched as it develops.
"""

__version__ = "0.1.0"

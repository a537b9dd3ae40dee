"""Particle storage, species, initial population and the tick driver."""

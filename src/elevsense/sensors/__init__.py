"""Sensor sample model, capture codec, and sample sources.

:mod:`models` defines :class:`Sample` and the :class:`StreamId` of every
feed; :mod:`codec` turns capture lines into samples; :mod:`sources` holds the
subscribe/unsubscribe capability the engine consumes plus in-process
implementations used for replay and tests.
"""

"""
Connector analysis: walker, call-graph registration, cycle detection, pipeline.
"""

"""
protosync - sync, compile and reassemble versioned protobuf definitions.

Pulls an exact commit of an upstream protocol-definition repository, runs the
schema compiler over its .proto files and rebuilds the flat compiler output
into one nested module file per version plus an aggregator that re-exports
the latest version.
"""

__version__ = "0.1.0"

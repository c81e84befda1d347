"""feats_metrics.core — Foundation layer.

Contains the colour classifier, paper-white detector, region masks, metrics
aggregator, template boundary scorer, types, decoding and report builder.
This module has NO dependencies on feats_metrics.techniques or feats_metrics.registry.
Only stdlib, numpy, and PIL are allowed here.
"""

"""
fpident: fingerprint enrollment and 1:N identification.

Subpackages:
- data: sensor capture and scan preprocessing
- enhancement: orientation field estimation
- minutiae: thinning, minutiae extraction and matching
- template: Template types and the template codec
- matching: match engine and decision policy
- storage: template stores
- pipelines: enrollment and identification pipelines
- cli: command line tools
- utils: configuration, logging, image I/O
"""

__version__ = "0.1.0"

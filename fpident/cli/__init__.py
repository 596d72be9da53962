"""
Command line tools: fpident-saver, fpident-identifier, fpident-capture.
"""

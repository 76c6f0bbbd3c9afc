"""modelverify: bounded model checking of contract-annotated classes"""

__version__ = "0.1.0"

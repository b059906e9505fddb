"""
Signing engine.

``signing`` drives the pipelines, ``identity`` wraps key material behind
the ``Signer`` protocol, ``pdf`` holds the incremental-update writer,
CMS builder and verifier, and ``appearance`` loads overlay images.
PDFs go in and come out as ``bytes``; output files are written by
``pdfsig.api``.
"""

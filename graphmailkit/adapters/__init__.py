"""
Adapters layer for legacy mail-library surfaces.

This package contains object models that mirror well-known mail libraries so
existing callers can keep their code while delivery goes through Microsoft
Graph.

Organization:
- mailkit/: MimeKit/MailKit shaped messages, addresses and SmtpClient
"""

"""Anki card generation from Sõnaveeb dictionary lookups.

Subpackages:
- sonacards.common: Shared utilities (cache store, config, logging)
- sonacards.proxy: Caching fetch proxy in front of the dictionary API
- sonacards.input: Input processing (reading word lists)
- sonacards.output: Output generation (rendering cards, writing the import file)
"""

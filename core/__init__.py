"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/__init__.py
Version:        1.0.0
Description:    Core logic package for SpellBook. Contains the document model,
                schema migration, pagination, window session management and
                persistence modules.
------------------------------------------------------------------------------
"""

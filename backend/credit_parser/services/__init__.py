"""Credit Report Parser - Services"""

"""Marketplace core: auction engine, wallets, events, configuration"""

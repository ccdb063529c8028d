"""Network Deployment Module.

This module deploys a declared wireless network onto controller device
profiles:
- Discover the profiles at each site (site -> device group -> profile)
- Select target profiles per site policy and merge across sites
- Create the network, assign it in batches and sync the profiles
- Persist the intent and reconcile it against the controller later

Architecture: Clean Architecture with Hexagonal (Ports & Adapters)
"""

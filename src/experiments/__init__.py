"""
Command line tools and batch experiments for inertial flow partitioning.
"""

"""Read and write batman-adv mesh tunables over netlink or sysfs."""

__version__ = "0.1.0"

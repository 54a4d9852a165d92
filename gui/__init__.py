from gui.romselector import ROMSelector
__all__ = ['ROMSelector']

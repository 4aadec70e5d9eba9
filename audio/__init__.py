"""
Audio playback layer for the soundboard.

Modules:
- base: Playback interface the core drives by block id
- mixer: Voice mixing for overlapping clips
- decode: soundfile decoding to stereo float32
- playback: sounddevice output backend
"""

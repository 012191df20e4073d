"""AMF0 and AMF3 encoders and decoders, shared types and the metadata helper."""
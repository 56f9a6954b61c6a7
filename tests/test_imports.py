def test_imports():
    import houdinigeo
    from houdinigeo import Document, Attribute, PolyPrimitive, NURBSCurvePrimitive, PointGroup, load_geo, save_geo
    assert hasattr(houdinigeo, "__version__")
    assert Document and Attribute and PolyPrimitive and NURBSCurvePrimitive and PointGroup
    assert callable(load_geo) and callable(save_geo)
